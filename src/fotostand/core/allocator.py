"""Gallery identifier allocation.

Four strategies are supported, chosen per deployment via ``id_mode``:

``derived``
    The photo filename without its image extension is the id.  If that
    gallery already exists the photo is rejected, never merged.
``random``
    Three words drawn uniformly (with replacement) from the word list,
    lower-cased and joined with the separator, e.g. ``wald-kerze-insel``.
    Collisions are retried up to ``max_allocation_attempts`` times.
``hybrid``
    An operator-supplied id is used when present, otherwise a random code.
``manual``
    Only operator-supplied ids are used; a photo without one is rejected.

Whatever the strategy, an id returned by :meth:`IdentifierAllocator.allocate`
has passed the path-safety guard and did not name an existing gallery at the
time of the check.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence

from fotostand.core.errors import AllocationExhaustedError, AlreadyExistsError, InvalidPathError
from fotostand.core.gallery_store import GalleryStore
from fotostand.core.security import ensure_valid_path
from fotostand.core.words import load_word_list

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_EXTENSIONS = (".jpg", ".jpeg")
ID_MODES = ("derived", "random", "hybrid", "manual")
RANDOM_MODES = ("random", "hybrid")


class IdentifierAllocator:
    """Produce collision-free gallery ids.

    Args:
        store: Store consulted for existing galleries.
        mode: ``"derived"``, ``"random"``, ``"hybrid"`` or ``"manual"``.
        words: Word list for random codes.
        separator: Separator between the three words.
        max_attempts: Random draws before giving up.
        image_extensions: Extensions stripped in derived mode.
        rng: Random source (injectable for tests).
    """

    def __init__(
        self,
        store: GalleryStore,
        mode: str = "derived",
        words: Sequence[str] = (),
        separator: str = "-",
        max_attempts: int = 100,
        image_extensions: Sequence[str] = DEFAULT_IMAGE_EXTENSIONS,
        rng: random.Random | None = None,
    ):
        if mode not in ID_MODES:
            raise ValueError(f"Unknown id mode: {mode}")
        if mode in RANDOM_MODES and not words:
            raise ValueError(f"id mode {mode!r} requires a non-empty word list")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.store = store
        self.mode = mode
        self.words = list(words)
        self.separator = separator
        self.max_attempts = max_attempts
        self.image_extensions = tuple(ext.lower() for ext in image_extensions)
        self._rng = rng or random.SystemRandom()

    @classmethod
    def from_config(cls, config, store: GalleryStore) -> IdentifierAllocator:
        """Build an allocator from a :class:`~fotostand.core.config.FotostandConfig`.

        The word list is only loaded when the mode can draw random codes.
        """
        words = load_word_list(config.word_list_path) if config.id_mode in RANDOM_MODES else []
        return cls(
            store,
            mode=config.id_mode,
            words=words,
            separator=config.id_separator,
            max_attempts=config.max_allocation_attempts,
            image_extensions=config.image_extensions,
        )

    def derive_id(self, filename: str) -> str:
        """Strip a known image extension (case-insensitive) from ``filename``."""
        lowered = filename.lower()
        for ext in self.image_extensions:
            if lowered.endswith(ext):
                return filename[: -len(ext)]
        return filename

    def random_code(self) -> str:
        """Draw one three-word code without checking for collisions."""
        return self.separator.join(self._rng.choice(self.words).lower() for _ in range(3))

    def random_id(self) -> str:
        """Draw three-word codes until one names no existing gallery.

        Raises:
            AllocationExhaustedError: After ``max_attempts`` colliding draws.
        """
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.random_code()
            if not self.store.exists(candidate):
                return candidate
            logger.debug(f"Random id {candidate} taken (attempt {attempt}/{self.max_attempts})")

        raise AllocationExhaustedError(
            f"No free gallery id found after {self.max_attempts} attempts"
        )

    def allocate(self, filename: str | None = None, requested_id: str | None = None) -> str:
        """Allocate an id for a new gallery.

        Args:
            filename: Name of the arriving photo (required in derived mode).
            requested_id: Operator-supplied id (used in hybrid and manual mode).

        Returns:
            An id that passed the path-safety guard and is not in use.

        Raises:
            AlreadyExistsError: If the derived or requested id is taken.
            InvalidPathError: If the derived or requested id is unsafe or empty,
                or no id was requested in manual mode.
            AllocationExhaustedError: If random allocation ran out of attempts.
        """
        if self.mode == "derived":
            if not filename:
                raise ValueError("derived id mode requires a filename")
            return self._claim(self.derive_id(filename))

        if self.mode == "manual":
            return self._claim(requested_id or "")

        if self.mode == "hybrid" and requested_id:
            return self._claim(requested_id)

        return self.random_id()

    def _claim(self, candidate: str) -> str:
        if not candidate:
            raise InvalidPathError("Gallery id must not be empty")
        ensure_valid_path(candidate)
        if self.store.exists(candidate):
            raise AlreadyExistsError(f"Gallery {candidate} already exists")
        return candidate
