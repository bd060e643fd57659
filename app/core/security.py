"""Local pseudo-identity."""

import secrets

from app.core.config import Settings, settings
from app.exceptions.base import AuthenticationError


class LocalIdentityProvider:
    """
    Maps a single configured credential pair to a fixed user identifier.

    There are no accounts: whoever knows the configured username and password
    acts as ``local_user_id``, and every project is owned by that identity.

    :ivar username: The accepted username.
    :type username: str
    :ivar user_id: The identity returned on a successful login.
    :type user_id: str
    """

    def __init__(self, config: Settings | None = None):
        config = config or settings
        self.username = config.local_username
        self._password = config.local_password
        self.user_id = config.local_user_id

    def authenticate(self, username: str, password: str) -> str:
        """
        Checks the credentials and returns the user identifier.

        :param username: Submitted username.
        :param password: Submitted password.
        :return: The fixed user identifier.
        :raises AuthenticationError: If either value does not match.
        """
        user_ok = secrets.compare_digest(username.encode(), self.username.encode())
        password_ok = secrets.compare_digest(password.encode(), self._password.encode())
        if not (user_ok and password_ok):
            raise AuthenticationError()
        return self.user_id
