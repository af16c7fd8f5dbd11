"""Registry of every user id the bot has seen; the broadcast audience."""

from abc import ABC, abstractmethod


class UserRegistry(ABC):
    """Add-only set of user ids. No removal, so readers never need a lock."""

    @abstractmethod
    def add(self, user_id):
        ...

    @abstractmethod
    def snapshot(self):
        """Current ids as a list, safe to iterate while others add."""
        ...

    @abstractmethod
    def __contains__(self, user_id):
        ...

    def __len__(self):
        return len(self.snapshot())


class InMemoryUserRegistry(UserRegistry):
    """Process-lifetime registry. Forgotten on restart."""

    def __init__(self, user_ids=()):
        self._ids = set(user_ids)

    def add(self, user_id):
        self._ids.add(user_id)

    def snapshot(self):
        return list(self._ids)

    def __contains__(self, user_id):
        return user_id in self._ids

    def __len__(self):
        return len(self._ids)
