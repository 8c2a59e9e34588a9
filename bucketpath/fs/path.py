# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Hierarchical paths over a bucket/key store.

An absolute path names a container (bucket) in its first segment; the
remaining segments form the object key. Relative paths are plain segment
sequences that only gain a container once resolved against an absolute path.

Example:
    >>> p = BucketPath.parse("/bucket/path/to/dir/")
    >>> p.container, p.key
    ('bucket', 'path/to/dir/')
    >>> str(p.resolve("child/xyz"))
    '/bucket/path/to/dir/child/xyz'
"""

from typing import Iterator, Optional, Tuple, Union

from ..client.properties import DEFAULT_HOST

SEPARATOR = "/"


class BucketPath:
    """
    A parsed path.

    Equality and hashing use the absolute flag and the segments only. A
    trailing separator marks the path as a directory key: it is kept in
    :attr:`key` and ``str()`` so it round-trips to the store, but two paths
    differing only by it are equal.

    Attributes:
        filesystem: Owning filesystem, or None for detached paths
        file_attributes: Cached attributes snapshot attached by the resolver
    """

    __slots__ = ("filesystem", "_segments", "_absolute", "_directory", "file_attributes")

    def __init__(self, filesystem, first: str, *more: str):
        text = SEPARATOR.join(part for part in (first,) + more if part)
        segments = tuple(s for s in text.split(SEPARATOR) if s)
        absolute = text.startswith(SEPARATOR)
        if absolute and not segments:
            raise ValueError(f"An absolute path must name a container: '{text}'")
        self.filesystem = filesystem
        self._segments = segments
        self._absolute = absolute
        self._directory = bool(segments) and text.endswith(SEPARATOR)
        self.file_attributes = None

    @classmethod
    def parse(cls, text: str, filesystem=None) -> "BucketPath":
        """Parse ``text`` into a path."""
        return cls(filesystem, text)

    @classmethod
    def _from_parts(cls, filesystem, segments: Tuple[str, ...], absolute: bool, directory: bool = False) -> "BucketPath":
        path = cls.__new__(cls)
        path.filesystem = filesystem
        path._segments = tuple(segments)
        path._absolute = absolute and bool(segments)
        path._directory = directory and bool(segments)
        path.file_attributes = None
        return path

    def _coerce(self, other: Union["BucketPath", str]) -> "BucketPath":
        if isinstance(other, BucketPath):
            return other
        return BucketPath(self.filesystem, other)

    # -- accessors -------------------------------------------------------

    @property
    def segments(self) -> Tuple[str, ...]:
        return self._segments

    def is_absolute(self) -> bool:
        return self._absolute

    @property
    def is_directory_key(self) -> bool:
        """True when the path was written with a trailing separator."""
        return self._directory

    @property
    def container(self) -> Optional[str]:
        """Container name of an absolute path, None for relative paths."""
        return self._segments[0] if self._absolute else None

    @property
    def is_root(self) -> bool:
        """True for ``/container`` itself."""
        return self._absolute and len(self._segments) == 1

    @property
    def key(self) -> str:
        """
        Store key for this path.

        Segments after the container joined by ``/``; empty for a container
        root. A trailing ``/`` is kept when the path was written with one.
        """
        names = self._segments[1:] if self._absolute else self._segments
        key = SEPARATOR.join(names)
        if key and self._directory:
            key += SEPARATOR
        return key

    @property
    def name_count(self) -> int:
        return len(self._segments)

    def get_name(self, index: int) -> "BucketPath":
        """Return segment ``index`` as a single-segment relative path."""
        if index < 0 or index >= len(self._segments):
            raise IndexError(f"Name index {index} out of range for {self}")
        return BucketPath._from_parts(self.filesystem, (self._segments[index],), False)

    def subpath(self, begin: int, end: int) -> "BucketPath":
        """Relative path of segments ``[begin, end)``."""
        if begin < 0 or end > len(self._segments) or begin >= end:
            raise ValueError(f"Invalid subpath range [{begin}, {end}) for {self}")
        return BucketPath._from_parts(self.filesystem, self._segments[begin:end], False)

    @property
    def file_name(self) -> Optional["BucketPath"]:
        """Last segment as a relative path; None for roots and empty paths."""
        if not self._segments or self.is_root:
            return None
        return BucketPath._from_parts(self.filesystem, self._segments[-1:], False)

    @property
    def parent(self) -> Optional["BucketPath"]:
        if len(self._segments) <= 1:
            return None
        return BucketPath._from_parts(self.filesystem, self._segments[:-1], self._absolute)

    @property
    def root(self) -> Optional["BucketPath"]:
        if not self._absolute:
            return None
        return BucketPath._from_parts(self.filesystem, self._segments[:1], True)

    # -- operations ------------------------------------------------------

    def resolve(self, other: Union["BucketPath", str]) -> "BucketPath":
        """
        Resolve ``other`` against this path.

        An absolute ``other`` is returned as is and an empty one leaves this
        path unchanged. Otherwise the segments are concatenated; the result
        keeps this path's absolute flag and ``other``'s trailing separator.
        """
        other = self._coerce(other)
        if other.is_absolute():
            return other
        if not other.segments:
            return self
        return BucketPath._from_parts(
            self.filesystem, self._segments + other.segments, self._absolute, other.is_directory_key
        )

    def resolve_sibling(self, other: Union["BucketPath", str]) -> "BucketPath":
        parent = self.parent
        other = self._coerce(other)
        if parent is None:
            return other
        return parent.resolve(other)

    def relativize(self, other: Union["BucketPath", str]) -> "BucketPath":
        """
        Build a relative path that leads from this path to ``other``.

        Raises:
            ValueError: If only one of the two paths is absolute
        """
        other = self._coerce(other)
        if self._absolute != other.is_absolute():
            raise ValueError(f"Cannot relativize {other} against {self}: both paths must be of the same type")
        common = 0
        for mine, theirs in zip(self._segments, other.segments):
            if mine != theirs:
                break
            common += 1
        parts = ("..",) * (len(self._segments) - common) + other.segments[common:]
        return BucketPath._from_parts(self.filesystem, parts, False, other.is_directory_key)

    def starts_with(self, other: Union["BucketPath", str]) -> bool:
        other = self._coerce(other)
        if self._absolute != other.is_absolute() or len(other.segments) > len(self._segments):
            return False
        return self._segments[:len(other.segments)] == other.segments

    def ends_with(self, other: Union["BucketPath", str]) -> bool:
        other = self._coerce(other)
        if other.is_absolute():
            return self == other
        count = len(other.segments)
        if count == 0 or count > len(self._segments):
            return False
        return self._segments[-count:] == other.segments

    def normalize(self) -> "BucketPath":
        """Remove ``.`` segments and fold ``..`` into the preceding segment."""
        result = []
        for segment in self._segments:
            if segment == ".":
                continue
            if segment == "..":
                floor = 1 if self._absolute else 0
                if len(result) > floor and result[-1] != "..":
                    result.pop()
                elif not self._absolute:
                    result.append(segment)
                continue
            result.append(segment)
        return BucketPath._from_parts(self.filesystem, tuple(result), self._absolute, self._directory)

    def to_uri(self) -> str:
        """Return ``s3://host/container/key`` for an absolute path."""
        if not self._absolute:
            raise ValueError(f"Cannot build a URI for relative path {self}")
        host = getattr(self.filesystem, "host", None) or DEFAULT_HOST
        return f"s3://{host}/{self.container}/{self.key}"

    # -- dunder ----------------------------------------------------------

    def __iter__(self) -> Iterator[str]:
        return iter(self._segments)

    def __eq__(self, other) -> bool:
        if not isinstance(other, BucketPath):
            return NotImplemented
        return self._absolute == other._absolute and self._segments == other._segments

    def __hash__(self) -> int:
        return hash((self._absolute, self._segments))

    def __str__(self) -> str:
        text = SEPARATOR.join(self._segments)
        if self._absolute:
            text = SEPARATOR + text
        if self._directory:
            text += SEPARATOR
        return text

    def __repr__(self) -> str:
        return f"BucketPath('{self}')"
