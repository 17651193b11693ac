import unittest

import numpy as np

from termtogif import raster
from termtogif.fonts import Face, FontResolutionError
from termtogif.term import DEFAULT_PEN, Pen
from termtogif.tests.stubs import DEFAULT_FONT, HAS_FREETYPE, StubFace, StubFontDatabase
from termtogif.theme import Theme

# Black background, white foreground, palette colors 0 to 15 are (i, 0, 0)
THEME = Theme((0, 0, 0), (255, 255, 255), [(i, 0, 0) for i in range(16)])


def settings(faces, terminal_size=(2, 1), families=('Mono',)):
    return raster.Settings(terminal_size=terminal_size,
                           font_db=StubFontDatabase(faces),
                           font_families=list(families),
                           font_size=10,
                           line_height=1.5,
                           theme=THEME)


class TestResolvePen(unittest.TestCase):
    def test_resolve_pen(self):
        test_cases = [
            ('default', DEFAULT_PEN, None, DEFAULT_PEN),
            ('bold brightens', Pen(foreground=1, bold=True), None,
             Pen(foreground=9, bold=True)),
            ('bold bright color', Pen(foreground=9, bold=True), None,
             Pen(foreground=9, bold=True)),
            ('bold 256 colors', Pen(foreground=100, bold=True), None,
             Pen(foreground=100, bold=True)),
            ('bold true color', Pen(foreground=(1, 2, 3), bold=True), None,
             Pen(foreground=(1, 2, 3), bold=True)),
            ('blink brightens background', Pen(background=2, blink=True), None,
             Pen(background=10, blink=True)),
            ('inverse', Pen(foreground=1, background=2, inverse=True), None,
             Pen(foreground=2, background=1, inverse=True)),
            ('inverse default colors', Pen(inverse=True), None,
             Pen(foreground=THEME.background, background=THEME.foreground, inverse=True)),
            ('cursor', Pen(foreground=1), (0, 0),
             Pen(foreground=THEME.background, background=1, inverse=True)),
            ('cursor on inverse', Pen(foreground=1, background=2, inverse=True), (0, 0),
             Pen(foreground=1, background=2, inverse=False)),
            ('cursor elsewhere', Pen(foreground=1), (1, 0), Pen(foreground=1)),
        ]
        for case, pen, cursor, expected in test_cases:
            with self.subTest(case=case):
                self.assertEqual(raster.resolve_pen(pen, cursor, 0, 0, THEME), expected)

    def test_color_to_rgb(self):
        self.assertEqual(raster.color_to_rgb(3, THEME), (3, 0, 0))
        self.assertEqual(raster.color_to_rgb(231, THEME), (255, 255, 255))
        self.assertEqual(raster.color_to_rgb((1, 2, 3), THEME), (1, 2, 3))

    def test_cell_width(self):
        self.assertEqual(raster.cell_width('a'), 1)
        self.assertEqual(raster.cell_width('中'), 2)


class TestGlyphCache(unittest.TestCase):
    def test_fallback_families(self):
        mono, emoji = StubFace('ab'), StubFace('☺')
        font_db = StubFontDatabase({('Mono', False, False): mono,
                                    ('Emoji', False, False): emoji})
        cache = raster.GlyphCache(font_db, ['Mono', 'Emoji'], 10)
        self.assertIs(cache.lookup('a')[0], mono)
        self.assertIs(cache.lookup('☺')[0], emoji)
        self.assertIsNone(cache.lookup('x'))

    def test_plain_style_fallback(self):
        regular, bold = StubFace('ab'), StubFace('a')
        font_db = StubFontDatabase({('Mono', False, False): regular,
                                    ('Mono', True, False): bold})
        cache = raster.GlyphCache(font_db, ['Mono'], 10)
        self.assertIs(cache.lookup('a', bold=True)[0], bold)
        self.assertIs(cache.lookup('b', bold=True)[0], regular)
        self.assertIs(cache.lookup('a', italic=True)[0], regular)

    def test_cached_results(self):
        face = StubFace('a')
        font_db = StubFontDatabase({('Mono', False, False): face})
        cache = raster.GlyphCache(font_db, ['Mono'], 10)
        for _ in range(3):
            self.assertIsNotNone(cache.get('a'))
            self.assertIsNone(cache.get('z'))
        self.assertEqual(face.rasterized, ['a', 'z'])
        # Faces are loaded once, missing faces included
        self.assertEqual(len(font_db.loaded), len(set(font_db.loaded)))


class TestRasterRenderer(unittest.TestCase):
    def renderer(self, chars='A', terminal_size=(2, 1)):
        faces = {('Mono', False, False): StubFace(chars)}
        return raster.RasterRenderer(settings(faces, terminal_size))

    def test_geometry(self):
        renderer = self.renderer(terminal_size=(80, 24))
        # (80 + 2) columns of 8 pixels, (24 + 1) rows of 15 pixels
        self.assertEqual(renderer.pixel_size, (656, 375))
        image = renderer.render([[(' ', DEFAULT_PEN)] * 80] * 24, None)
        self.assertEqual(image.shape, (375, 656, 4))
        self.assertEqual(image.dtype, np.uint8)

    def test_no_font(self):
        with self.assertRaises(FontResolutionError):
            raster.RasterRenderer(settings({}))

    def test_render(self):
        renderer = self.renderer()
        lines = [[('A', DEFAULT_PEN), (' ', Pen(background=1))]]
        image = renderer.render(lines, None)

        # Margins
        np.testing.assert_array_equal(image[0, 0], [0, 0, 0, 255])
        # Glyph: left edge of the first cell, 4 pixels above the baseline
        # (top of the row at y=8, baseline at y=8+11)
        np.testing.assert_array_equal(image[15:19, 8:12, :3],
                                      np.full((4, 4, 3), 255, dtype=np.uint8))
        np.testing.assert_array_equal(image[14, 8, :3], [0, 0, 0])
        np.testing.assert_array_equal(image[15, 12, :3], [0, 0, 0])
        # Background of the second cell
        np.testing.assert_array_equal(image[8:23, 16:24, :3],
                                      np.full((15, 8, 3), (1, 0, 0), dtype=np.uint8))
        np.testing.assert_array_equal(image[23, 16, :3], [0, 0, 0])
        self.assertTrue((image[:, :, 3] == 255).all())

    def test_cursor(self):
        renderer = self.renderer()
        image = renderer.render([[('A', DEFAULT_PEN), (' ', DEFAULT_PEN)]], (0, 0))
        # Reverse video: white cell, black glyph
        np.testing.assert_array_equal(image[8, 8, :3], [255, 255, 255])
        np.testing.assert_array_equal(image[16, 9, :3], [0, 0, 0])
        np.testing.assert_array_equal(image[8, 16, :3], [0, 0, 0])

    def test_faint(self):
        renderer = self.renderer()
        image = renderer.render([[('A', Pen(faint=True)), (' ', DEFAULT_PEN)]], None)
        np.testing.assert_array_equal(image[16, 9, :3], [127, 127, 127])

    def test_underline(self):
        renderer = self.renderer()
        image = renderer.render([[(' ', Pen(underline=True)), (' ', DEFAULT_PEN)]], None)
        # Top of the row at y=8, underline 1.2 font sizes below
        np.testing.assert_array_equal(image[20, 8:16, :3],
                                      np.full((8, 3), 255, dtype=np.uint8))
        np.testing.assert_array_equal(image[20, 16, :3], [0, 0, 0])

    def test_missing_glyph(self):
        renderer = self.renderer(chars='')
        image = renderer.render([[('A', Pen(background=2)), (' ', DEFAULT_PEN)]], None)
        np.testing.assert_array_equal(image[16, 9, :3], [2, 0, 0])

    def test_wide_character(self):
        renderer = self.renderer(chars='中', terminal_size=(3, 1))
        lines = [[('中', Pen(background=3)), ('', Pen(background=3)), (' ', DEFAULT_PEN)]]
        image = renderer.render(lines, None)
        np.testing.assert_array_equal(image[8, 8:24, :3],
                                      np.full((16, 3), (3, 0, 0), dtype=np.uint8))
        np.testing.assert_array_equal(image[8, 24, :3], [0, 0, 0])


class TestDrawRenderer(unittest.TestCase):
    def test_render_backgrounds(self):
        faces = {('Mono', False, False): StubFace('')}
        renderer = raster.DrawRenderer(settings(faces))
        lines = [[(' ', Pen(background=4)), (' ', DEFAULT_PEN)]]
        image = renderer.render(lines, None)
        self.assertEqual(image.shape, (30, 32, 4))
        np.testing.assert_array_equal(image[8, 8], [4, 0, 0, 255])
        np.testing.assert_array_equal(image[8, 16], [0, 0, 0, 255])
        np.testing.assert_array_equal(image[0, 0], [0, 0, 0, 255])


class TestRenderer(unittest.TestCase):
    def test_renderer(self):
        faces = {('Mono', False, False): StubFace('A')}
        for name, renderer_cls in raster.RENDERERS.items():
            with self.subTest(case=name):
                self.assertIsInstance(raster.renderer(name, settings(faces)), renderer_cls)

        with self.assertRaises(ValueError):
            raster.renderer('svg', settings(faces))


@unittest.skipUnless(HAS_FREETYPE, 'Pillow built without FreeType')
class TestPillowFace(unittest.TestCase):
    def settings(self):
        faces = {('Mono', False, False): Face(DEFAULT_FONT)}
        return settings(faces, terminal_size=(3, 1))

    def test_glyph_cache(self):
        cache = raster.GlyphCache(self.settings().font_db, ['Mono'], 20)
        self.assertIsNotNone(cache.get('A'))
        self.assertIsNone(cache.get('\U0001F600'))

    def test_renderers(self):
        for name in raster.RENDERERS:
            with self.subTest(case=name):
                renderer = raster.renderer(name, self.settings())
                blank = renderer.render([[(' ', DEFAULT_PEN)] * 3], None)
                self.assertFalse((blank[:, :, :3] > 0).any())

                # White text on a black background
                image = renderer.render([[('A', DEFAULT_PEN), (' ', DEFAULT_PEN),
                                          ('\U0001F600', DEFAULT_PEN)]], None)
                self.assertEqual(image.shape, blank.shape)
                self.assertGreater(image[:, :, :3].max(), 128)
