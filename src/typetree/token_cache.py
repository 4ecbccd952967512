"""
Token-based cache invalidation.

Memoizes derived views of a mutable registry. The owner exposes a version
token that it bumps on every mutation; the cache drops everything it holds
the first time it observes a new token. This keeps invalidation trivially
correct: nothing is ever served that was computed against an older state.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar('T')


@dataclass(frozen=True)
class CacheKey:
    """Immutable cache key built from several hashable components."""
    components: Tuple[Any, ...]

    @classmethod
    def from_args(cls, *args) -> 'CacheKey':
        """Create cache key from variable arguments."""
        return cls(components=args)


class TokenCache(Generic[T]):
    """
    Keyed cache that clears itself when its token changes.

    Example:
        registry_version = 0
        cache = TokenCache(lambda: registry_version)

        view = cache.get_or_compute(
            CacheKey.from_args('ancestors', int),
            lambda: expensive_lookup(int),
        )
        # After registry_version changes, the next call recomputes.
    """

    def __init__(self, token_provider: Callable[[], int]):
        """
        Initialize token cache.

        Args:
            token_provider: Function that returns the current token value
        """
        self._token_provider = token_provider
        self._cache: Dict[CacheKey, T] = {}
        self._last_token: Optional[int] = None

    def _sync(self) -> None:
        current_token = self._token_provider()
        if current_token != self._last_token:
            self._cache.clear()
            self._last_token = current_token

    def get_or_compute(self, key: CacheKey, compute_fn: Callable[[], T]) -> T:
        """
        Get cached value or compute and cache it.

        Args:
            key: Cache key
            compute_fn: Function to compute value if cache miss

        Returns:
            Cached or computed value
        """
        self._sync()
        if key in self._cache:
            return self._cache[key]
        value = compute_fn()
        self._cache[key] = value
        return value

    def invalidate(self) -> None:
        """Manually invalidate the entire cache."""
        self._cache.clear()
        self._last_token = None

    def __len__(self) -> int:
        self._sync()
        return len(self._cache)
