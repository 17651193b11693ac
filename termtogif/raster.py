"""Rendering of terminal frames as RGBA images

Two renderers are available:
    - RasterRenderer composites glyph coverage bitmaps into the image,
    blending the text color with the background already painted
    - DrawRenderer draws the text of each cell with PIL.ImageDraw

Both produce numpy arrays of shape (height, width, 4) and of type uint8
whose size only depends on the size of the terminal and on the font.
"""
import logging
from collections import namedtuple

import numpy as np
from PIL import Image, ImageDraw
from wcwidth import wcswidth

from termtogif.fonts import FontResolutionError

logger = logging.getLogger(__name__)

# Vertical position of underlines relative to the top of a row, in font sizes
UNDERLINE_POSITION = 1.2

Settings = namedtuple('Settings', ['terminal_size', 'font_db', 'font_families',
                                   'font_size', 'line_height', 'theme'])
Settings.__doc__ = 'Rendering parameters shared by all renderers'
Settings.terminal_size.__doc__ = '(columns, rows) of the terminal'
Settings.font_families.__doc__ = 'Family names by order of preference'


def color_to_rgb(color, theme):
    """Return the (r, g, b) tuple of an indexed or true color"""
    if isinstance(color, int):
        return theme.color(color)
    return color


def resolve_pen(pen, cursor, column, row, theme):
    """Return the pen used to draw the cell at (column, row)

    Bold text and blinking backgrounds use the bright variant of the first
    8 colors of the palette. The cell under the cursor is displayed in
    reverse video. Colors of pens in reverse video are swapped, the default
    colors of the theme replacing missing colors.
    """
    inverse = pen.inverse
    if cursor is not None and cursor == (column, row):
        inverse = not inverse

    foreground, background = pen.foreground, pen.background
    if pen.bold and isinstance(foreground, int) and foreground < 8:
        foreground += 8
    if pen.blink and isinstance(background, int) and background < 8:
        background += 8

    if inverse:
        foreground, background = (
            theme.background if background is None else background,
            theme.foreground if foreground is None else foreground,
        )

    return pen._replace(foreground=foreground, background=background, inverse=inverse)


def cell_width(char):
    """Number of columns occupied by a character (1 or 2)"""
    return 2 if wcswidth(char) == 2 else 1


class GlyphCache:
    """Glyphs of the characters rendered so far

    Glyphs are looked up in the faces of the configured families by order of
    preference. If no face has a bold or italic glyph for a character, the
    regular glyph is used instead. Characters with no glyph at all are
    remembered as such.
    """
    def __init__(self, font_db, font_families, font_size):
        self.font_db = font_db
        self.font_families = list(font_families)
        self.font_size = font_size
        self._faces = {}
        self._glyphs = {}

    def face(self, family, bold=False, italic=False):
        key = (family, bold, italic)
        if key not in self._faces:
            self._faces[key] = self.font_db.load(family, bold, italic, self.font_size)
        return self._faces[key]

    def _rasterize(self, char, bold, italic):
        for family in self.font_families:
            face = self.face(family, bold, italic)
            if face is None:
                continue
            glyph = face.rasterize(char)
            if glyph is not None:
                return face, glyph
        return None

    def lookup(self, char, bold=False, italic=False):
        """Return a (face, glyph) tuple or None if no face has the glyph"""
        key = (char, bold, italic)
        if key not in self._glyphs:
            found = self._rasterize(char, bold, italic)
            if found is None and (bold or italic):
                found = self._rasterize(char, False, False)
            if found is None:
                logger.debug('No glyph found for {!r}'.format(char))
            self._glyphs[key] = found
        return self._glyphs[key]

    def get(self, char, bold=False, italic=False):
        found = self.lookup(char, bold, italic)
        return None if found is None else found[1]


_Cell = namedtuple('_Cell', ['row', 'char', 'pen', 'left', 'right', 'top', 'bottom', 'baseline'])


class _Renderer:
    def __init__(self, settings):
        self.theme = settings.theme
        self.font_size = settings.font_size
        self.glyphs = GlyphCache(settings.font_db, settings.font_families, settings.font_size)

        primary = None
        for family in settings.font_families:
            primary = self.glyphs.face(family)
            if primary is not None:
                break
        if primary is None:
            raise FontResolutionError('No regular face for font families {}'
                                      .format(', '.join(settings.font_families)))
        self.primary_face = primary

        columns, rows = settings.terminal_size
        self.col_width = primary.advance('/')
        self.row_height = settings.font_size * settings.line_height
        self.pixel_width = int(round((columns + 2) * self.col_width))
        self.pixel_height = int(round((rows + 1) * self.row_height))
        self.margin_left = self.col_width
        self.margin_top = int(round(self.row_height / 2))
        # Distance between the top of a row and the baseline of its text
        self.baseline_offset = int(round((self.row_height + primary.ascent
                                          - primary.descent) / 2))

    @property
    def pixel_size(self):
        return self.pixel_width, self.pixel_height

    def _x(self, column):
        return int(round(self.margin_left + column * self.col_width))

    def _y(self, row):
        return self.margin_top + int(round(row * self.row_height))

    def underline_y(self, row):
        return self.margin_top + int(round(row * self.row_height
                                           + self.font_size * UNDERLINE_POSITION))

    def _cells(self, lines, cursor):
        """Yield the cells of the frame with their resolved pen and position"""
        for row, line in enumerate(lines):
            top, bottom = self._y(row), self._y(row + 1)
            for column, (char, pen) in enumerate(line):
                # Right half of a double width character
                if not char:
                    continue
                pen = resolve_pen(pen, cursor, column, row, self.theme)
                yield _Cell(row, char, pen, self._x(column), self._x(column + cell_width(char)),
                            top, bottom, top + self.baseline_offset)

    def render(self, lines, cursor):
        raise NotImplementedError


class RasterRenderer(_Renderer):
    """Composite glyph coverage bitmaps into an RGBA buffer"""
    def render(self, lines, cursor):
        buffer = np.empty((self.pixel_height, self.pixel_width, 4), dtype=np.uint8)
        buffer[:, :, :3] = self.theme.background
        buffer[:, :, 3] = 255

        for cell in self._cells(lines, cursor):
            pen = cell.pen
            if pen.background is not None:
                buffer[cell.top:cell.bottom, cell.left:cell.right, :3] = \
                    color_to_rgb(pen.background, self.theme)

            if pen.foreground is None:
                foreground = self.theme.foreground
            else:
                foreground = color_to_rgb(pen.foreground, self.theme)

            if pen.underline:
                y = self.underline_y(cell.row)
                if 0 <= y < self.pixel_height:
                    buffer[y, cell.left:cell.right, :3] = foreground

            if cell.char == ' ':
                continue

            glyph = self.glyphs.get(cell.char, pen.bold, pen.italic)
            if glyph is not None:
                self._blend(buffer, glyph, cell.left, cell.baseline, foreground, pen.faint)

        return buffer

    def _blend(self, buffer, glyph, x, baseline, foreground, faint):
        """Blend the foreground color into buffer using glyph coverage as ratio"""
        height, width = glyph.bitmap.shape
        x0, y0 = x + glyph.left, baseline + glyph.top
        # Clip the bitmap to the buffer
        left, top = max(x0, 0), max(y0, 0)
        right = min(x0 + width, self.pixel_width)
        bottom = min(y0 + height, self.pixel_height)
        if left >= right or top >= bottom:
            return

        coverage = glyph.bitmap[top - y0:bottom - y0, left - x0:right - x0]
        coverage = coverage.astype(np.uint16)[:, :, np.newaxis]
        if faint:
            coverage //= 2

        background = buffer[top:bottom, left:right, :3].astype(np.uint16)
        color = np.array(foreground, dtype=np.uint16)
        blended = background * (255 - coverage) // 255 + color * coverage // 255
        buffer[top:bottom, left:right, :3] = blended.astype(np.uint8)


class DrawRenderer(_Renderer):
    """Draw the text of each cell with PIL.ImageDraw"""
    def render(self, lines, cursor):
        image = Image.new('RGB', self.pixel_size, self.theme.background)
        draw = ImageDraw.Draw(image)

        for cell in self._cells(lines, cursor):
            pen = cell.pen
            background = self.theme.background
            if pen.background is not None:
                background = color_to_rgb(pen.background, self.theme)
                draw.rectangle([cell.left, cell.top, cell.right - 1, cell.bottom - 1],
                               fill=background)

            if pen.foreground is None:
                foreground = self.theme.foreground
            else:
                foreground = color_to_rgb(pen.foreground, self.theme)
            if pen.faint:
                foreground = tuple((f + b) // 2 for f, b in zip(foreground, background))

            if pen.underline:
                y = self.underline_y(cell.row)
                draw.line([(cell.left, y), (cell.right - 1, y)], fill=foreground)

            if cell.char == ' ':
                continue

            found = self.glyphs.lookup(cell.char, pen.bold, pen.italic)
            if found is not None:
                face, _ = found
                draw.text((cell.left, cell.baseline), cell.char, font=face.font,
                          fill=foreground, anchor='ls')

        return np.asarray(image.convert('RGBA'), dtype=np.uint8)


RENDERERS = {
    'raster': RasterRenderer,
    'draw': DrawRenderer,
}


def renderer(name, settings):
    """Return an instance of the renderer called `name`"""
    try:
        renderer_cls = RENDERERS[name]
    except KeyError:
        raise ValueError('Unknown renderer: {} (expected one of {})'
                         .format(name, ', '.join(RENDERERS))) from None
    return renderer_cls(settings)
