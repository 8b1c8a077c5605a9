"""Render sinks for the status report.

`OledDisplay` drives a 128x64 SSD1306 panel over I2C through luma.oled;
`TerminalDisplay` redraws the report on a terminal for development
machines without the panel.
"""

from __future__ import annotations

import sys
from typing import Any, Protocol, TextIO

from PIL import Image, ImageDraw, ImageFont

from sensorpanel.errors import RenderError

CLEAR_SCREEN = "\033[H\033[2J"


class Display(Protocol):
    def render(self, text: str) -> None:
        """Show `text`, replacing the previous frame. Raises RenderError."""
        ...


class TerminalDisplay:
    """Writes each frame to a text stream, clearing the screen first."""

    def __init__(self, stream: TextIO | None = None, clear: bool = True) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._clear = clear

    def render(self, text: str) -> None:
        frame = (CLEAR_SCREEN if self._clear else "") + text + "\n"
        try:
            self._stream.write(frame)
            self._stream.flush()
        except (OSError, ValueError) as e:
            raise RenderError(str(e)) from e


FONT_SIZES = range(10, 4, -1)
# tallest ascender, deepest descender and the widest glyph the report uses
_SAMPLE_GLYPHS = "Hgy%"


def fit_font(rows: int, height: int) -> tuple[ImageFont.FreeTypeFont, int]:
    """Largest default font whose glyph box lets `rows` lines fit in `height` px.

    Returns the font and its line pitch.
    """
    for size in FONT_SIZES:
        font = ImageFont.load_default(size=size)
        pitch = font.getbbox(_SAMPLE_GLYPHS)[3]
        if pitch * rows <= height:
            return font, pitch
    raise RenderError(f"no default font size fits {rows} lines in {height} px")


def _open_ssd1306(i2c_port: int, address: int, rotate: int) -> Any:
    """Open the SSD1306 device. luma is only needed when the panel is used."""
    try:
        from luma.core.error import Error as LumaError
        from luma.core.interface.serial import i2c
        from luma.oled.device import ssd1306
    except ImportError as e:
        raise RenderError(f"luma.oled is not installed ({e.name})") from e

    try:
        serial = i2c(port=i2c_port, address=address)
        return ssd1306(serial, width=OledDisplay.WIDTH, height=OledDisplay.HEIGHT, rotate=rotate)
    except (LumaError, OSError) as e:
        raise RenderError(
            f"cannot initialize SSD1306 at 0x{address:02X} on I2C bus {i2c_port}: {e}"
        ) from e


class OledDisplay:
    """SSD1306 128x64 monochrome panel on the I2C bus."""

    WIDTH = 128
    HEIGHT = 64
    ROWS = 8

    def __init__(
        self,
        i2c_port: int = 1,
        address: int = 0x3C,
        contrast: int = 255,
        rotate: int = 0,
    ) -> None:
        self._device = _open_ssd1306(i2c_port, address, rotate)
        self._font, self.line_height = fit_font(self.ROWS, self.HEIGHT)
        try:
            self._device.contrast(contrast)
        except OSError as e:
            raise RenderError(f"cannot set contrast: {e}") from e

    def render(self, text: str) -> None:
        image = Image.new(self._device.mode, self._device.size)
        draw = ImageDraw.Draw(image)
        for row, line in enumerate(text.splitlines()[: self.ROWS]):
            draw.text((0, row * self.line_height), line, font=self._font, fill="white")
        try:
            self._device.display(image)
        except OSError as e:
            raise RenderError(str(e)) from e
