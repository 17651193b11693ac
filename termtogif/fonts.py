"""Font lookup and glyph rasterization

FontDatabase indexes the font files found in the system font directories
and in user supplied directories by family name, weight and style. Faces
are loaded with Pillow (FreeType) and rasterize glyphs into coverage
bitmaps: 2D arrays of 8 bits opacity values.
"""
import logging
import os
import sys
from collections import namedtuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

FONT_EXTENSIONS = ('.ttf', '.otf', '.ttc', '.otc')

# Maximum number of faces read from a font collection
MAX_COLLECTION_FACES = 32

# Noncharacter code point: never mapped, rendered with the .notdef glyph
_NOTDEF_PROBE = '\uffff'


class FontResolutionError(Exception):
    pass


def system_font_dirs():
    """Return the font directories of the platform"""
    home = os.path.expanduser('~')
    if sys.platform == 'darwin':
        return ['/System/Library/Fonts', '/Library/Fonts',
                os.path.join(home, 'Library', 'Fonts')]
    if sys.platform == 'win32':
        windir = os.environ.get('WINDIR', 'C:\\Windows')
        dirs = [os.path.join(windir, 'Fonts')]
        local_appdata = os.environ.get('LOCALAPPDATA')
        if local_appdata:
            dirs.append(os.path.join(local_appdata, 'Microsoft', 'Windows', 'Fonts'))
        return dirs

    data_home = os.environ.get('XDG_DATA_HOME', os.path.join(home, '.local', 'share'))
    return ['/usr/share/fonts', '/usr/local/share/fonts',
            os.path.join(data_home, 'fonts'), os.path.join(home, '.fonts')]


FaceInfo = namedtuple('FaceInfo', ['family', 'bold', 'italic', 'path', 'index', 'style'])
FaceInfo.__doc__ = 'Description of a face found in a font file'


def _face_info(font, path, index):
    family, style = font.getname()
    style = (style or '').lower()
    return FaceInfo(family=family,
                    bold='bold' in style or 'black' in style or 'heavy' in style,
                    italic='italic' in style or 'oblique' in style,
                    path=path,
                    index=index,
                    style=style)


# Styles preferred for faces which are neither bold nor italic
_REGULAR_STYLES = ('regular', 'book', 'normal', 'roman', 'medium', 'text')


class FontDatabase:
    """Index of the faces available on the system"""
    def __init__(self):
        self.faces = []

    def load_fonts_dir(self, directory):
        """Index every font file found under `directory`"""
        for dirpath, _, filenames in os.walk(directory):
            for filename in sorted(filenames):
                if filename.lower().endswith(FONT_EXTENSIONS):
                    self.load_font_file(os.path.join(dirpath, filename))

    def load_font_file(self, path):
        collection = path.lower().endswith(('.ttc', '.otc'))
        for index in range(MAX_COLLECTION_FACES if collection else 1):
            try:
                font = ImageFont.truetype(path, size=12, index=index)
            except OSError:
                if index == 0:
                    logger.debug('Unable to read font file {}'.format(path))
                break
            self.faces.append(_face_info(font, path, index))

    def load_system_fonts(self):
        for directory in system_font_dirs():
            if os.path.isdir(directory):
                self.load_fonts_dir(directory)

    def query(self, family, bold=False, italic=False):
        """Return the FaceInfo matching the family and style or None"""
        candidates = [face for face in self.faces
                      if face.family.lower() == family.lower()
                      and face.bold == bold and face.italic == italic]
        if not candidates:
            return None

        def key(face):
            return face.style not in _REGULAR_STYLES, face.style, face.path

        return sorted(candidates, key=key)[0]

    def load(self, family, bold, italic, size):
        """Return a Face of the given family and style or None"""
        info = self.query(family, bold, italic)
        if info is None:
            return None
        logger.debug('Loading face "{}" ({}) from {}'.format(info.family, info.style, info.path))
        try:
            font = ImageFont.truetype(info.path, size=size, index=info.index)
        except OSError as exc:
            # Bitmap only fonts only support a few sizes
            logger.debug('Unable to load {} at size {}: {}'.format(info.path, size, exc))
            return None
        return Face(font)


def split_families(font_family):
    """Split a comma separated list of family names"""
    return [name.strip() for name in font_family.split(',') if name.strip()]


def init(font_dirs, font_family):
    """Return a font database and the list of families found in it

    Families are looked up in the order of the comma separated list
    `font_family`. Raise FontResolutionError if no family of the list has a
    regular face.
    """
    font_db = FontDatabase()
    font_db.load_system_fonts()
    for directory in font_dirs:
        font_db.load_fonts_dir(directory)

    families = []
    for name in split_families(font_family):
        info = font_db.query(name)
        if info is not None and info.family not in families:
            families.append(info.family)
    if not families:
        raise FontResolutionError('No faces matching font families {}'.format(font_family))
    return font_db, families


Glyph = namedtuple('Glyph', ['left', 'top', 'bitmap'])
Glyph.__doc__ = 'Rasterized glyph'
Glyph.left.__doc__ = 'Horizontal offset of the bitmap from the pen position'
Glyph.top.__doc__ = 'Vertical offset of the bitmap from the baseline (negative above)'
Glyph.bitmap.__doc__ = 'Coverage values as a 2D array of uint8'


class Face:
    """Font face loaded at a fixed pixel size"""
    def __init__(self, font):
        self.font = font
        self.ascent, self.descent = font.getmetrics()
        self._notdef = self._render(_NOTDEF_PROBE)

    def advance(self, char):
        return self.font.getlength(char)

    def _render(self, char):
        left, top, right, bottom = self.font.getbbox(char, anchor='ls')
        width, height = max(right - left, 0), max(bottom - top, 0)
        image = Image.new('L', (width, height), 0)
        if width and height:
            ImageDraw.Draw(image).text((-left, -top), char, font=self.font,
                                       fill=255, anchor='ls')
        return Glyph(left, top, np.asarray(image, dtype=np.uint8))

    def rasterize(self, char):
        """Return the Glyph of `char` or None if the face has no such glyph"""
        glyph = self._render(char)
        if (glyph.left, glyph.top) == (self._notdef.left, self._notdef.top) \
                and np.array_equal(glyph.bitmap, self._notdef.bitmap):
            return None
        return glyph
