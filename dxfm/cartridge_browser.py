"""Cartridge browser logic: sysex file filtering, drops, keyboard focus order and dump requests."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable, Generic, Hashable, Iterable, Sequence, TypeVar

__all__ = [
    "CARTRIDGE_SIZE",
    "CARTRIDGE_SYSEX_SIZE",
    "FocusRing",
    "accepts_drop",
    "can_replace_in_file",
    "copy_dropped_files",
    "dump_request",
    "is_cartridge_file",
]

SYSEX_EXTENSION = ".syx"
CARTRIDGE_SIZE = 4096
CARTRIDGE_SYSEX_SIZE = 4104

_DUMP_REQUESTS = {
    "program": bytes((0xF0, 0x43, 0x20, 0x09, 0xF7)),
    "cartridge": bytes((0xF0, 0x43, 0x20, 0x00, 0xF7)),
}

T = TypeVar("T", bound=Hashable)


def _is_sysex_name(name: str | Path) -> bool:
    return str(name).lower().endswith(SYSEX_EXTENSION)


def is_cartridge_file(path: str | Path) -> bool:
    """Tell whether ``path`` is a ``.syx`` file large enough to hold a cartridge."""
    file = Path(path)
    if file.suffix.lower() != SYSEX_EXTENSION or not file.is_file():
        return False
    return file.stat().st_size >= CARTRIDGE_SIZE


def accepts_drop(filenames: Iterable[str | Path]) -> bool:
    """Tell whether any of the dragged file names is a ``.syx`` file."""
    return any(_is_sysex_name(name) for name in filenames)


def copy_dropped_files(
    filenames: Iterable[str | Path],
    selected: str | Path | None,
    default_dir: str | Path,
) -> list[Path]:
    """Copy the dropped ``.syx`` files next to the selected browser entry.

    The target is ``selected`` when it exists, otherwise ``default_dir``; a file
    target is replaced by its parent directory. Sources that cannot be read are
    skipped. Returns the paths that were written.
    """
    target_dir = Path(selected) if selected is not None else None
    if target_dir is None or not target_dir.exists():
        target_dir = Path(default_dir)
    if not target_dir.is_dir():
        target_dir = target_dir.parent

    copied: list[Path] = []
    for name in filenames:
        if not _is_sysex_name(name):
            continue
        source = Path(name)
        target = target_dir / source.name
        try:
            shutil.copyfile(source, target)
        except OSError:
            continue
        copied.append(target)
    return copied


def can_replace_in_file(path: str | Path) -> bool:
    """Tell whether a program may be written into the cartridge file at ``path``."""
    file = Path(path)
    if not file.is_file():
        return False
    return file.stat().st_size in (CARTRIDGE_SIZE, CARTRIDGE_SYSEX_SIZE)


def dump_request(kind: str) -> bytes:
    """Return the sysex message asking a DX7 to send its ``program`` or ``cartridge``."""
    try:
        return _DUMP_REQUESTS[kind]
    except KeyError:
        raise ValueError(f"unknown dump request {kind!r}; expected 'program' or 'cartridge'") from None


class FocusRing(Generic[T]):
    """Keyboard focus order over a fixed list of components.

    ``is_active`` tells whether a component may take focus; inactive ones are
    skipped when moving forward or backward. Moving past either end wraps to
    the opposite end.
    """

    def __init__(
        self,
        components: Sequence[T],
        is_active: Callable[[T], bool] | None = None,
    ) -> None:
        if not components:
            raise ValueError("a focus ring needs at least one component")
        self.components = list(components)
        self.is_active = is_active if is_active is not None else (lambda _component: True)

    def default(self) -> T:
        """Return the component that gets focus first."""
        return self.components[0]

    def _after(self, ordered: Iterable[T], current: T) -> T | None:
        found = False
        for component in ordered:
            if component == current:
                found = True
                continue
            if found and self.is_active(component):
                return component
        return None

    def next(self, current: T) -> T:
        """Return the active component after ``current``, wrapping to the first one."""
        result = self._after(self.components, current)
        return self.components[0] if result is None else result

    def previous(self, current: T) -> T:
        """Return the active component before ``current``, wrapping to the last one."""
        result = self._after(reversed(self.components), current)
        return self.components[-1] if result is None else result