"""Colour and image theme of the editor, with overrides read from a theme XML file."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ElementTree
from dataclasses import dataclass, field
from pathlib import Path

__all__ = [
    "BUILTIN_IMAGES",
    "Colour",
    "Theme",
    "default_theme",
    "load_theme",
    "parse_colour_value",
]

_HEX_VALUE = re.compile(r"\s*\+?(?:0[xX])?([0-9a-fA-F]+)")
_MAX_ARGB = 0xFFFFFFFF
_MIN_VALUE_LENGTH = 8
_MIN_PATH_LENGTH = 4

BACKGROUND_ID = "Dexed::backgroundId"
FILL_COLOUR_ID = "Dexed::fillColourId"

# Image ids a theme may replace, in the spelling the theme file uses.
BUILTIN_IMAGES: tuple[str, ...] = (
    "Knob_68x68.png",
    "Switch_96x52.png",
    "SwitchLighted_48x26.png",
    "Switch_64x64.png",
    "ButtonUnlabeled_50x30.png",
    "Slider_52x52.png",
    "Scaling_36_26.png",
    "Light_28x28.png",
    "LFO_36_26.png",
    "OperatorEditor_574x436_png",
    "GlobalEditor_1728x288_png",
)


@dataclass(frozen=True)
class Colour:
    """A 32-bit ARGB colour."""

    argb: int

    def __post_init__(self) -> None:
        if not 0 <= self.argb <= _MAX_ARGB:
            raise ValueError(f"ARGB value out of range: {self.argb:#x}")

    @classmethod
    def from_rgb(cls, red: int, green: int, blue: int, alpha: int = 255) -> "Colour":
        """Build an opaque (or given-alpha) colour from 8-bit components."""
        for component in (red, green, blue, alpha):
            if not 0 <= component <= 255:
                raise ValueError(f"colour component out of range: {component}")
        return cls((alpha << 24) | (red << 16) | (green << 8) | blue)

    @property
    def alpha(self) -> int:
        return (self.argb >> 24) & 0xFF

    @property
    def red(self) -> int:
        return (self.argb >> 16) & 0xFF

    @property
    def green(self) -> int:
        return (self.argb >> 8) & 0xFF

    @property
    def blue(self) -> int:
        return self.argb & 0xFF

    def darker(self, amount: float = 1.0) -> "Colour":
        """Return this colour with its RGB components scaled by 1 / (1 + amount)."""
        scale = 1.0 / (1.0 + amount)
        return Colour.from_rgb(
            int(scale * self.red), int(scale * self.green), int(scale * self.blue), self.alpha
        )


WHITE = Colour(0xFFFFFFFF)
TRANSPARENT_BLACK = Colour(0x00000000)
FILL_COLOUR = Colour.from_rgb(77, 159, 151)
LIGHT_BACKGROUND = Colour.from_rgb(78, 72, 63)
BACKGROUND = Colour.from_rgb(60, 50, 47)
ROUND_BACKGROUND = Colour.from_rgb(58, 52, 48)
_CONTROL_BACKGROUND = Colour.from_rgb(20, 18, 18)
_GREEN = Colour(0xFF0FC00F)


def parse_colour_value(value: str) -> Colour:
    """Parse a hexadecimal ARGB string such as ``FF4D9F97`` or ``0xFF4D9F97``.

    Raises ValueError for strings shorter than eight characters, strings with
    characters that are not hexadecimal digits, and values above 0xFFFFFFFF.
    """
    if len(value) < _MIN_VALUE_LENGTH:
        raise ValueError(f"colour value too short: {value!r}")
    match = _HEX_VALUE.fullmatch(value)
    if match is None:
        raise ValueError(f"illegal character in colour value {value!r}")
    number = int(match.group(1), 16)
    if number > _MAX_ARGB:
        raise ValueError(f"colour value {number:#x} exceeds 0xFFFFFFFF")
    return Colour(number)


def _default_colours() -> dict[str, Colour]:
    return {
        "TextButton::buttonColourId": _GREEN,
        "TextButton::textColourOnId": WHITE,
        "TextButton::textColourOffId": WHITE,
        "Slider::rotarySliderOutlineColourId": _GREEN,
        "Slider::rotarySliderFillColourId": WHITE,
        "AlertWindow::backgroundColourId": LIGHT_BACKGROUND,
        "AlertWindow::textColourId": WHITE,
        "TextEditor::backgroundColourId": _CONTROL_BACKGROUND,
        "TextEditor::textColourId": WHITE,
        "TextEditor::highlightColourId": FILL_COLOUR,
        "TextEditor::outlineColourId": TRANSPARENT_BLACK,
        "ComboBox::backgroundColourId": _CONTROL_BACKGROUND,
        "ComboBox::textColourId": WHITE,
        "ComboBox::buttonColourId": WHITE,
        "PopupMenu::backgroundColourId": BACKGROUND,
        "PopupMenu::textColourId": WHITE,
        "PopupMenu::highlightedTextColourId": WHITE,
        "PopupMenu::highlightedBackgroundColourId": FILL_COLOUR,
        "TreeView::backgroundColourId": BACKGROUND,
        "DirectoryContentsDisplayComponent::highlightColourId": FILL_COLOUR,
        "DirectoryContentsDisplayComponent::textColourId": WHITE,
        "DialogWindow::backgroundColourId": BACKGROUND,
        "ListBox::backgroundColourId": _CONTROL_BACKGROUND,
        "ScrollBar::thumbColourId": BACKGROUND.darker(),
    }


@dataclass
class Theme:
    """Widget colours, the editor's own colours and image overrides.

    ``images`` maps each image id to a replacement file, or to None when the
    built-in image is used.
    """

    colours: dict[str, Colour] = field(default_factory=_default_colours)
    fill_colour: Colour = FILL_COLOUR
    light_background: Colour = LIGHT_BACKGROUND
    background: Colour = BACKGROUND
    round_background: Colour = ROUND_BACKGROUND
    images: dict[str, Path | None] = field(
        default_factory=lambda: dict.fromkeys(BUILTIN_IMAGES)
    )

    def apply_xml(self, text: str, base_dir: str | Path = ".") -> list[str]:
        """Apply the ``colour`` and ``image`` entries of a theme document.

        Image paths are resolved against ``base_dir``. Entries that cannot be
        used are skipped; a message for each is returned. Raises ValueError
        when the document is not well-formed XML.
        """
        try:
            root = ElementTree.fromstring(text)
        except ElementTree.ParseError as exc:
            raise ValueError(f"theme document is not valid XML: {exc}") from exc

        skipped: list[str] = []
        children = list(root)
        for element in children:
            if element.tag != "colour":
                continue
            name = element.get("id", "")
            value = element.get("value", "")
            if not name or not value:
                continue
            try:
                colour = parse_colour_value(value)
            except ValueError as exc:
                skipped.append(f"colour {name!r}: {exc}")
                continue
            if name in self.colours:
                self.colours[name] = colour
            elif name == BACKGROUND_ID:
                self.background = colour
            elif name == FILL_COLOUR_ID:
                self.fill_colour = colour
            else:
                skipped.append(f"colour {name!r}: unknown colour id")

        base = Path(base_dir)
        for element in children:
            if element.tag != "image":
                continue
            name = element.get("id", "")
            path = element.get("path", "")
            if name not in self.images:
                skipped.append(f"image {name!r}: unknown image id")
                continue
            if len(path) < _MIN_PATH_LENGTH:
                continue
            candidate = base / path
            if candidate.is_file():
                self.images[name] = candidate
            else:
                skipped.append(f"image {name!r}: cannot load {path!r}")
        return skipped


def default_theme() -> Theme:
    """Return the built-in theme."""
    return Theme()


def load_theme(path: str | Path) -> Theme:
    """Return the built-in theme with the overrides of the theme file at ``path``.

    A missing or malformed file leaves the built-in theme unchanged. Image
    paths in the file are relative to the file's directory.
    """
    theme_file = Path(path)
    theme = default_theme()
    if not theme_file.is_file():
        return theme
    try:
        theme.apply_xml(theme_file.read_text(encoding="utf-8"), theme_file.parent)
    except ValueError:
        return default_theme()
    return theme