import unittest

import termtogif.config as config
from termtogif.theme import InvalidTheme, Theme

BUILTIN_THEMES = ['asciinema', 'dracula', 'github-dark', 'github-light', 'gruvbox-dark',
                  'kanagawa', 'kanagawa-dragon', 'kanagawa-light', 'monokai', 'nord',
                  'solarized-dark', 'solarized-light']


class TestConfig(unittest.TestCase):
    def test_default_themes(self):
        themes = config.default_themes()
        self.assertEqual(sorted(themes), BUILTIN_THEMES)
        self.assertIn(config.DEFAULT_THEME, themes)
        self.assertEqual(themes['dracula'].background, (0x28, 0x2a, 0x36))
        self.assertEqual(themes['dracula'].foreground, (0xf8, 0xf8, 0xf2))

    def test_themes_from_ini(self):
        data = '[Foo]\ncolors=000000,ffffff,' + ','.join(['123456'] * 8) + '\n'
        themes = config.themes_from_ini(data)
        self.assertEqual(list(themes), ['foo'])
        self.assertEqual(themes['foo'].palette, ((0x12, 0x34, 0x56),) * 16)

        with self.assertRaises(InvalidTheme):
            config.themes_from_ini('[foo]\ncolors=000000,ffffff\n')

    def test_validate_theme(self):
        themes = {'dracula': Theme((0, 0, 0), (1, 1, 1), [(2, 2, 2)] * 16)}
        custom = '000000,ffffff,' + ','.join(['abcdef'] * 16)
        self.assertIs(config.validate_theme('dracula', themes), themes['dracula'])
        self.assertIs(config.validate_theme('Dracula', themes), themes['dracula'])
        self.assertEqual(config.validate_theme(custom, themes).foreground, (255, 255, 255))
        for value in ['unknown', '000000,ffffff', 'zzzzzz,' * 10]:
            with self.subTest(case=value):
                with self.assertRaises(ValueError):
                    config.validate_theme(value, themes)

    def test_validate_positive_float(self):
        self.assertEqual(config.validate_positive_float('1.5'), 1.5)
        self.assertEqual(config.validate_positive_float('2'), 2.0)
        for value in ['0', '-1', 'abc', '', 'nan', 'inf', '-inf']:
            with self.subTest(case=value):
                with self.assertRaises(ValueError):
                    config.validate_positive_float(value)

    def test_validate_fps_cap(self):
        self.assertEqual(config.validate_fps_cap('1'), 1)
        self.assertEqual(config.validate_fps_cap('255'), 255)
        for value in ['0', '256', '-1', '2.5', 'abc']:
            with self.subTest(case=value):
                with self.assertRaises(ValueError):
                    config.validate_fps_cap(value)

    def test_config_defaults(self):
        configuration = config.Config()
        self.assertIsNone(configuration.columns)
        self.assertIsNone(configuration.theme)
        self.assertIsNone(configuration.idle_time_limit)
        self.assertEqual(configuration.font_size, 14)
        self.assertEqual(configuration.fps_cap, 30)
        self.assertEqual(configuration.speed, 1.0)
        self.assertEqual(configuration.renderer, 'raster')
        self.assertFalse(configuration.skip_invalid_events)
