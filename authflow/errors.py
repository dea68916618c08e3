from typing import Optional


class ServiceError(Exception):
    """
    Failure reported by an external collaborator.

    `user_message` is safe to show next to the submit control; `code` is a stable
    machine label for logs and clients. Transport details stay in `detail`.
    """

    default_message = "Something went wrong. Please try again."

    def __init__(
        self,
        code: str,
        user_message: Optional[str] = None,
        *,
        status: Optional[int] = None,
        detail: str = "",
    ):
        self.code = code
        self.user_message = user_message or self.default_message
        self.status = status
        self.detail = detail
        super().__init__(f"{code}: {detail or self.user_message}")


class IdentityServiceError(ServiceError):
    pass


class LinkProviderError(ServiceError):
    default_message = "We couldn't start account linking. Please try again."


class SchemaRegistryError(RuntimeError):
    """Registry/resolver inconsistency. Not recoverable by the user."""


class InvalidTransitionError(RuntimeError):
    def __init__(self, machine: str, src: str, dst: str):
        self.src = src
        self.dst = dst
        super().__init__(f"{machine}: illegal transition {src} -> {dst}")


class FormNotFoundError(KeyError):
    def __init__(self, form_id: str):
        self.form_id = form_id
        super().__init__(form_id)


class FormStateConflict(Exception):
    """Client asked for an action the form instance's current state does not allow."""
