import configparser
import math
import pkgutil
from collections import namedtuple

from termtogif.theme import Theme, ThemeError

PKG_THEMES_PATH = 'data/themes.ini'

DEFAULT_FONT_FAMILY = ('JetBrains Mono,Fira Code,SF Mono,Menlo,Consolas,'
                       'DejaVu Sans Mono,Liberation Mono')
# Last resort families for characters missing from the text fonts
EMOJI_FONT_FAMILY = ('Noto Emoji,Symbola,Noto Sans Symbols 2,Segoe UI Emoji,'
                     'Apple Color Emoji,Noto Color Emoji')
DEFAULT_FONT_SIZE = 14
DEFAULT_FPS_CAP = 30
DEFAULT_IDLE_TIME_LIMIT = 5.0
DEFAULT_LAST_FRAME_DURATION = 3.0
DEFAULT_LINE_HEIGHT = 1.4
DEFAULT_RENDERER = 'raster'
DEFAULT_SPEED = 1.0
DEFAULT_THEME = 'dracula'

_CONFIG_FIELDS = [
    'columns',
    'rows',
    'font_dirs',
    'font_family',
    'font_size',
    'fps_cap',
    'idle_time_limit',
    'last_frame_duration',
    'line_height',
    'no_loop',
    'renderer',
    'speed',
    'theme',
    'skip_invalid_events',
]
_Config = namedtuple('_Config', _CONFIG_FIELDS)
_Config.__new__.__defaults__ = (
    None,
    None,
    (),
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    DEFAULT_FPS_CAP,
    None,
    DEFAULT_LAST_FRAME_DURATION,
    DEFAULT_LINE_HEIGHT,
    False,
    DEFAULT_RENDERER,
    DEFAULT_SPEED,
    None,
    False,
)


class Config(_Config):
    """Rendering configuration

    columns, rows: Size of the terminal (None to use the size of the recording)
    font_dirs: Additional directories searched for fonts
    font_family: Comma separated list of font families
    idle_time_limit: Maximum pause in seconds (None to use the value of the
    recording or the default value)
    last_frame_duration: Duration of the last frame in seconds
    no_loop: Play the animation only once
    theme: Theme instance (None to use the theme of the recording or the
    default theme)
    skip_invalid_events: Ignore invalid event records instead of failing
    """


def themes_from_ini(data):
    """Return a mapping between theme names and Theme instances"""
    parser = configparser.ConfigParser()
    parser.read_string(data)
    return {name.lower(): Theme.from_string(parser[name]['colors'])
            for name in parser.sections()}


def default_themes():
    """Return the built-in themes"""
    data = pkgutil.get_data(__name__, PKG_THEMES_PATH).decode('utf-8')
    return themes_from_ini(data)


def validate_theme(value, themes):
    """Return the built-in theme called `value` or the theme described by a
    comma separated list of hex triplets"""
    if value.lower() in themes:
        return themes[value.lower()]
    try:
        return Theme.from_string(value)
    except ThemeError as exc:
        raise ValueError('Invalid theme "{}": {}'.format(value, exc)) from exc


def validate_positive_float(value):
    number = float(value)
    if not math.isfinite(number) or number <= 0:
        raise ValueError('value must be a finite number greater than 0')
    return number


def validate_positive_int(value):
    if value.isdigit() and int(value) >= 1:
        return int(value)
    raise ValueError('value must be an integer greater than 0')


def validate_fps_cap(value):
    fps_cap = validate_positive_int(value)
    if fps_cap > 255:
        raise ValueError('FPS cap must be at most 255')
    return fps_cap
