import time
import uuid
from typing import Callable, Dict, Optional, Union

from authflow.core.form_session import FormSession
from authflow.errors import FormNotFoundError
from authflow.forms.models import FormMode
from authflow.observability.logging import log
from authflow.services.identity_client import IdentityClient
from authflow.services.link_client import LinkClient
from authflow.services.navigation import RedirectNavigator
from authflow.settings import settings

SessionFactory = Callable[[str, FormMode], FormSession]


def default_session_factory(form_id: str, mode: FormMode) -> FormSession:
    return FormSession(
        form_id,
        mode,
        identity_service=IdentityClient(),
        link_provider=LinkClient(),
        navigator=RedirectNavigator(),
    )


class FormRepo:
    """
    In-process registry of live form instances. Sessions hold in-flight coroutines,
    so they live in this process only; idle ones are evicted lazily.
    """

    def __init__(self, factory: Optional[SessionFactory] = None, ttl_sec: Optional[int] = None):
        self.factory = factory or default_session_factory
        self.ttl_sec = int(settings.FORM_IDLE_TTL_SEC if ttl_sec is None else ttl_sec)
        self._sessions: Dict[str, FormSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, mode: Union[FormMode, str]) -> FormSession:
        self.evict_expired()
        form_id = uuid.uuid4().hex
        session = self.factory(form_id, mode)
        self._sessions[form_id] = session
        log(event="form_created", formId=form_id, mode=session.mode.value)
        return session

    def get(self, form_id: str) -> FormSession:
        self.evict_expired()
        session = self._sessions.get(form_id)
        if session is None:
            raise FormNotFoundError(form_id)
        session.touch()
        return session

    def evict_expired(self, now: Optional[float] = None) -> int:
        if self.ttl_sec <= 0:
            return 0
        now = time.monotonic() if now is None else now
        expired = [
            fid for fid, s in self._sessions.items()
            if not s.busy and (now - s.touched_at) > self.ttl_sec
        ]
        for fid in expired:
            del self._sessions[fid]
        if expired:
            log(event="forms_evicted", count=len(expired))
        return len(expired)


_repo: Optional[FormRepo] = None


def get_form_repo() -> FormRepo:
    global _repo
    if _repo is None:
        _repo = FormRepo()
    return _repo
