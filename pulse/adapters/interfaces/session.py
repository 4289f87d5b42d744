import logging
from typing import Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Per-adapter mapping of user ID to the provider's access or session token.

    Created with its adapter and discarded with it; nothing is persisted.
    Each adapter instance owns exactly one store, so tokens never leak
    between adapters or between processes.
    """

    def __init__(self, provider: str):
        self.provider = provider
        self._tokens: Dict[str, str] = {}

    def get(self, user_id: str) -> Optional[str]:
        return self._tokens.get(user_id)

    def set(self, user_id: str, token: str) -> None:
        if not user_id:
            raise ValueError("User ID is required to store a session")
        if user_id in self._tokens:
            logger.debug(f"Replacing {self.provider} session for user {user_id}")
        self._tokens[user_id] = token

    def pop(self, user_id: str) -> Optional[str]:
        return self._tokens.pop(user_id, None)

    def user_ids(self) -> List[str]:
        """Snapshot of the users with an active session."""
        return list(self._tokens)

    def clear(self) -> None:
        self._tokens.clear()

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[str]:
        return iter(self.user_ids())
