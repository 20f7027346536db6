"""
Character grid the widgets paint into, plus the bordered frame and the
conversion into rich text for the terminal.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from rich.box import SQUARE, Box
from rich.style import Style
from rich.text import Text


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def inner(self, horizontal: int = 1, vertical: int = 1) -> "Rect":
        if self.width < 2 * horizontal or self.height < 2 * vertical:
            return Rect(self.x, self.y, 0, 0)
        return Rect(
            self.x + horizontal,
            self.y + vertical,
            self.width - 2 * horizontal,
            self.height - 2 * vertical,
        )

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom


@dataclass
class Cell:
    symbol: str = " "
    fg: Optional[str] = None
    bg: Optional[str] = None

    def set_char(self, ch: str) -> "Cell":
        self.symbol = ch
        return self

    def set_style(self, fg: Optional[str] = None, bg: Optional[str] = None) -> "Cell":
        # Unset colors leave the current ones in place.
        if fg is not None:
            self.fg = fg
        if bg is not None:
            self.bg = bg
        return self

    def style(self) -> Optional[Style]:
        if self.fg is None and self.bg is None:
            return None
        return Style(color=self.fg, bgcolor=self.bg)


@dataclass
class Buffer:
    area: Rect
    cells: List[Cell] = field(default_factory=list)

    def __post_init__(self):
        if not self.cells:
            self.cells = [Cell() for _ in range(self.area.width * self.area.height)]

    @classmethod
    def empty(cls, width: int, height: int) -> "Buffer":
        return cls(Rect(0, 0, width, height))

    def __getitem__(self, pos) -> Cell:
        x, y = pos
        if not self.area.contains(x, y):
            raise IndexError(f"cell {pos!r} outside buffer area {self.area!r}")
        return self.cells[(y - self.area.y) * self.area.width + (x - self.area.x)]

    def set_string(self, x: int, y: int, text: str, fg: Optional[str] = None, bg: Optional[str] = None) -> int:
        """Write text from (x, y), dropping characters past the right edge.

        Returns the number of cells written.
        """
        written = 0
        for i, ch in enumerate(text):
            if not self.area.contains(x + i, y):
                break
            self[(x + i, y)].set_char(ch).set_style(fg=fg, bg=bg)
            written += 1
        return written

    def row(self, y: int) -> List[Cell]:
        start = (y - self.area.y) * self.area.width
        return self.cells[start : start + self.area.width]

    def rows(self) -> Iterator[List[Cell]]:
        for y in range(self.area.y, self.area.bottom):
            yield self.row(y)

    def row_text(self, y: int) -> str:
        return "".join(cell.symbol for cell in self.row(y))

    def to_text(self) -> Text:
        text = Text(no_wrap=True, overflow="crop")
        for index, row in enumerate(self.rows()):
            if index:
                text.append("\n")
            for cell in row:
                text.append(cell.symbol, style=cell.style())
        return text


@dataclass
class Block:
    """A frame with all four borders and a title on the top edge."""

    title: str = ""
    fg: Optional[str] = None
    box: Box = field(default_factory=lambda: SQUARE)

    def render(self, area: Rect, buf: Buffer) -> None:
        if area.width < 2 or area.height < 2:
            return
        for y in range(area.y, area.bottom):
            for x in range(area.x, area.right):
                buf[(x, y)].set_style(fg=self.fg)

        top, bottom = area.y, area.bottom - 1
        left, right = area.x, area.right - 1
        for x in range(left + 1, right):
            buf[(x, top)].set_char(self.box.top)
            buf[(x, bottom)].set_char(self.box.bottom)
        for y in range(top + 1, bottom):
            buf[(left, y)].set_char(self.box.head_left)
            buf[(right, y)].set_char(self.box.head_right)
        buf[(left, top)].set_char(self.box.top_left)
        buf[(right, top)].set_char(self.box.top_right)
        buf[(left, bottom)].set_char(self.box.bottom_left)
        buf[(right, bottom)].set_char(self.box.bottom_right)

        if self.title:
            title = self.title[: max(0, area.width - 2)]
            buf.set_string(left + 1, top, title)
