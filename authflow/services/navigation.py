from typing import Optional

from authflow.settings import settings


class RedirectNavigator:
    """
    Navigation boundary for the HTTP layer: records the redirect a client must follow.
    """

    def __init__(self, home_path: Optional[str] = None):
        self.home_path = home_path or settings.AUTH_HOME_PATH
        self.target: Optional[str] = None
        self.calls = 0

    def navigate_to_authenticated_home(self) -> None:
        self.calls += 1
        self.target = self.home_path
