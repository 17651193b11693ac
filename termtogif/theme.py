"""Terminal color themes

A theme is made of a default background color, a default foreground color
and the 16 colors of the terminal palette. Colors 16 to 255 are not part of
the theme: they are computed from the 6x6x6 color cube and the 24 steps
grayscale ramp used by xterm.

Two textual representations are supported:
    - comma separated hex triplets: background, foreground, then 8 or 16
    palette colors ("282a36,f8f8f2,21222c,ff5555,...")
    - the asciicast representation: '#rrggbb' foreground and background
    colors and a colon separated palette of 8 or 16 '#rrggbb' colors
"""
from collections import namedtuple

PALETTE_SIZE = 16


class ThemeError(Exception):
    pass


class InvalidTheme(ThemeError):
    pass


class InvalidColorFormat(ThemeError):
    pass


def parse_hex_triplet(triplet):
    """Return the (r, g, b) tuple described by a 6 digits hex triplet"""
    if not isinstance(triplet, str) or len(triplet) != 6:
        raise InvalidColorFormat('{!r} is not a hex triplet'.format(triplet))
    try:
        return tuple(int(triplet[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError as exc:
        raise InvalidColorFormat('{!r} is not a hex triplet'.format(triplet)) from exc


def parse_hex_color(color):
    """Return the (r, g, b) tuple described by a '#rrggbb' string"""
    if not isinstance(color, str) or len(color) != 7 or color[0] != '#':
        raise InvalidColorFormat('{!r} is not a "#rrggbb" color'.format(color))
    return parse_hex_triplet(color[1:])


_Theme = namedtuple('Theme', ['background', 'foreground', 'palette'])


class Theme(_Theme):
    """Color theme of the terminal

    background: default background color as an (r, g, b) tuple
    foreground: default text color as an (r, g, b) tuple
    palette: tuple of the 16 terminal colors
    """
    def __new__(cls, background, foreground, palette):
        palette = tuple(palette)
        if len(palette) != PALETTE_SIZE:
            raise InvalidTheme('expected {} palette colors, got {}'
                               .format(PALETTE_SIZE, len(palette)))
        return super().__new__(cls, tuple(background), tuple(foreground), palette)

    @classmethod
    def from_string(cls, string):
        """Parse a comma separated list of 10 or 18 hex triplets"""
        colors = [parse_hex_triplet(triplet)
                  for triplet in string.split(',') if triplet]
        if len(colors) not in (10, 18):
            raise InvalidTheme('expected 10 or 18 hex triplets, got {}'
                               .format(len(colors)))

        background, foreground, *ansi = colors
        palette = [ansi[i % len(ansi)] for i in range(PALETTE_SIZE)]
        return cls(background, foreground, palette)

    @classmethod
    def from_asciicast(cls, fg, bg, palette):
        """Build a theme from the color definitions embedded in a recording

        Colors of the palette are '#rrggbb' strings separated by a colon.
        Palettes must hold exactly 8 or 16 colors; an 8 colors palette is
        repeated to fill the 16 slots.
        """
        foreground = parse_hex_color(fg)
        background = parse_hex_color(bg)
        if not isinstance(palette, str):
            raise InvalidTheme('invalid palette: {!r}'.format(palette))

        # 8 or 16 colors of 7 characters joined by a single separator
        if len(palette) not in (8 * 8 - 1, 16 * 8 - 1):
            raise InvalidTheme('invalid palette: expected 8 or 16 colors')

        colors = [parse_hex_color(color) for color in palette.split(':')]
        if len(colors) not in (8, 16):
            raise InvalidTheme('invalid palette: expected 8 or 16 colors')

        return cls(background, foreground, (colors * 2)[:PALETTE_SIZE])

    def color(self, index):
        """Return the (r, g, b) tuple of color number `index` (0-255)"""
        if not 0 <= index <= 255:
            raise ValueError('color index out of range: {}'.format(index))

        if index < PALETTE_SIZE:
            return self.palette[index]

        if index < 232:
            n = index - 16
            return tuple(0 if level == 0 else 55 + 40 * level
                         for level in (n // 36 % 6, n // 6 % 6, n % 6))

        value = 8 + 10 * (index - 232)
        return value, value, value
