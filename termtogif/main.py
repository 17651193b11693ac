"""Command line interface of termtogif"""

import argparse
import contextlib
import itertools
import logging
import os
import sys
import tempfile
import time

import requests

import termtogif.asciicast as asciicast
import termtogif.config as config
import termtogif.events as events
import termtogif.fonts as fonts
import termtogif.gif as gif
import termtogif.raster as raster
import termtogif.term as term
from termtogif.theme import ThemeError

logger = logging.getLogger('termtogif')

USAGE = """termtogif input output [--renderer RENDERER] [--theme THEME]
                 [--font-family FONT_FAMILY] [--font-size FONT_SIZE]
                 [--font-dir FONT_DIR] [--line-height LINE_HEIGHT]
                 [--speed SPEED] [--fps-cap FPS_CAP]
                 [--idle-time-limit IDLE_TIME_LIMIT]
                 [--last-frame-duration DURATION] [--cols COLS] [--rows ROWS]
                 [--no-loop] [--skip-invalid-events] [-v] [-h]

Render an asciicast recording as an animated GIF
"""

# Content types accepted for recordings downloaded over HTTP
CAST_CONTENT_TYPES = ('application/x-asciicast', 'application/json')
HTTP_TIMEOUT = 30

# Permissions of the GIF file before applying the umask
OUTPUT_FILE_MODE = 0o666

# Errors reported to the user without a traceback
FATAL_ERRORS = (
    asciicast.AsciiCastError,
    ThemeError,
    term.InvalidTerminalSize,
    fonts.FontResolutionError,
    gif.EncodingError,
    OSError,
)


def parse(args, themes):
    """Parse command line arguments

    :param args: Arguments to parse
    :param themes: Mapping between the names of the built-in themes and themes
    :return: Parsed arguments
    """
    parser = argparse.ArgumentParser(prog='termtogif', usage=USAGE)
    parser.add_argument(
        'input',
        help='asciicast recording (v1, v2 or v3): path of a file, URL of a '
             'recording or "-" for standard input'
    )
    parser.add_argument(
        'output',
        help='path of the GIF animation or "-" for standard output'
    )
    parser.add_argument(
        '--renderer',
        choices=sorted(raster.RENDERERS),
        default=config.DEFAULT_RENDERER,
        help='rendering backend (default: {})'.format(config.DEFAULT_RENDERER)
    )
    parser.add_argument(
        '--theme',
        help=('color theme: one of the built-in themes ({}) or a comma '
              'separated list of 10 or 18 hex triplets (background, foreground '
              'and palette colors)').format(', '.join(sorted(themes))),
        type=lambda value: config.validate_theme(value, themes),
        metavar='THEME'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='log debug messages to a temporary file'
    )

    font_group = parser.add_argument_group('font options')
    font_group.add_argument(
        '--font-family',
        default=config.DEFAULT_FONT_FAMILY,
        help='comma separated list of font families (default: "{}")'
             .format(config.DEFAULT_FONT_FAMILY)
    )
    font_group.add_argument(
        '--font-size',
        type=config.validate_positive_int,
        default=config.DEFAULT_FONT_SIZE,
        help='font size in pixels (default: {})'.format(config.DEFAULT_FONT_SIZE)
    )
    font_group.add_argument(
        '--font-dir',
        action='append',
        default=[],
        dest='font_dirs',
        help='additional directory searched for fonts (may be repeated)',
        metavar='FONT_DIR'
    )
    font_group.add_argument(
        '--line-height',
        type=config.validate_positive_float,
        default=config.DEFAULT_LINE_HEIGHT,
        help='line height relative to the font size (default: {})'
             .format(config.DEFAULT_LINE_HEIGHT)
    )

    timing_group = parser.add_argument_group('timing options')
    timing_group.add_argument(
        '--speed',
        type=config.validate_positive_float,
        default=config.DEFAULT_SPEED,
        help='playback speed factor (default: {})'.format(config.DEFAULT_SPEED)
    )
    timing_group.add_argument(
        '--fps-cap',
        type=config.validate_fps_cap,
        default=config.DEFAULT_FPS_CAP,
        help='maximum number of frames per second (default: {})'
             .format(config.DEFAULT_FPS_CAP)
    )
    timing_group.add_argument(
        '--idle-time-limit',
        type=config.validate_positive_float,
        help=('maximum pause in seconds (default: value of the recording or '
              '{})').format(config.DEFAULT_IDLE_TIME_LIMIT)
    )
    timing_group.add_argument(
        '--last-frame-duration',
        type=config.validate_positive_float,
        default=config.DEFAULT_LAST_FRAME_DURATION,
        help='duration of the last frame in seconds (default: {})'
             .format(config.DEFAULT_LAST_FRAME_DURATION),
        metavar='DURATION'
    )
    timing_group.add_argument(
        '--no-loop',
        action='store_true',
        help='play the animation only once'
    )

    terminal_group = parser.add_argument_group('terminal options')
    terminal_group.add_argument(
        '--cols',
        type=config.validate_positive_int,
        help='number of columns of the terminal (default: value of the recording)'
    )
    terminal_group.add_argument(
        '--rows',
        type=config.validate_positive_int,
        help='number of rows of the terminal (default: value of the recording)'
    )
    terminal_group.add_argument(
        '--skip-invalid-events',
        action='store_true',
        help='ignore invalid event records instead of aborting'
    )

    return parser.parse_args(args)


def _umask():
    mask = os.umask(0)
    os.umask(mask)
    return mask


def _is_url(location):
    return location.lower().startswith(('http://', 'https://'))


def fetch(url):
    """Download a recording and return its lines"""
    logger.info('Downloading {}'.format(url))
    try:
        response = requests.get(url, timeout=HTTP_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise asciicast.FormatError('Unable to download {}: {}'.format(url, exc)) from exc

    content_type = response.headers.get('Content-Type', '')
    content_type = content_type.split(';')[0].strip().lower()
    if content_type not in CAST_CONTENT_TYPES:
        raise asciicast.FormatError('Unsupported content type for {}: "{}" (expected one of {})'
                                    .format(url, content_type, ', '.join(CAST_CONTENT_TYPES)))
    # Decoded by the asciicast parsers
    return response.content.splitlines()


@contextlib.contextmanager
def open_input(location):
    """Yield the lines of the recording found at `location` as bytes"""
    if location == '-':
        yield sys.stdin.buffer
    elif _is_url(location):
        yield fetch(location)
    else:
        with open(location, 'rb') as input_file:
            yield input_file


@contextlib.contextmanager
def open_output(location):
    """Yield a binary file object for the GIF animation

    The animation is written to a temporary file which replaces `location`
    only if rendering succeeds.
    """
    if location == '-':
        yield sys.stdout.buffer
        sys.stdout.buffer.flush()
        return

    directory = os.path.dirname(os.path.abspath(location))
    fd, temp_path = tempfile.mkstemp(prefix='.termtogif_', suffix='.gif', dir=directory)
    try:
        with os.fdopen(fd, 'wb') as output_file:
            yield output_file
    except BaseException:
        os.remove(temp_path)
        raise
    os.chmod(temp_path, OUTPUT_FILE_MODE & ~_umask())
    os.replace(temp_path, location)


def terminal_size(configuration, header):
    columns = configuration.columns if configuration.columns is not None else header.columns
    rows = configuration.rows if configuration.rows is not None else header.rows
    return columns, rows


def select_theme(configuration, header, themes):
    """Return the theme of the command line, of the recording or the default
    theme, in this order of preference"""
    if configuration.theme is not None:
        return configuration.theme, 'command line'
    if header.theme is not None:
        return header.theme, 'recording'
    return themes[config.DEFAULT_THEME], config.DEFAULT_THEME


def select_idle_time_limit(configuration, header):
    if configuration.idle_time_limit is not None:
        return configuration.idle_time_limit
    if header.idle_time_limit is not None:
        return header.idle_time_limit
    return config.DEFAULT_IDLE_TIME_LIMIT


def timeline(cast_events, idle_time_limit, speed, fps_cap):
    """Return the output events of a recording as they should be displayed"""
    # Anchor event so that the first pause is measured from time 0
    anchored = itertools.chain([(0.0, '')], cast_events)
    limited = events.limit_idle_time(anchored, idle_time_limit)
    accelerated = events.accelerate(limited, speed)
    return events.batch(accelerated, fps_cap)


def render(cast, output, configuration, themes):
    """Render a recording as a GIF animation written to the file object
    `output` and return the number of frames"""
    start = time.monotonic()
    header = cast.header

    size = terminal_size(configuration, header)
    logger.info('Terminal size: {}x{}'.format(*size))
    idle_time_limit = select_idle_time_limit(configuration, header)
    event_stream = timeline(cast.events, idle_time_limit, configuration.speed,
                            configuration.fps_cap)
    frames = term.frames(event_stream, size)

    font_family = ','.join([configuration.font_family, config.DEFAULT_FONT_FAMILY,
                            config.EMOJI_FONT_FAMILY])
    font_db, families = fonts.init(configuration.font_dirs, font_family)
    logger.info('Font families: {}'.format(', '.join(families)))

    theme, theme_origin = select_theme(configuration, header, themes)
    logger.info('Theme: {}'.format(theme_origin))

    settings = raster.Settings(terminal_size=size,
                               font_db=font_db,
                               font_families=families,
                               font_size=configuration.font_size,
                               line_height=configuration.line_height,
                               theme=theme)
    renderer = raster.renderer(configuration.renderer, settings)
    width, height = renderer.pixel_size
    logger.info('GIF size: {}x{} pixels'.format(width, height))

    count = 0
    with gif.writer(output, width, height, repeat=not configuration.no_loop,
                    last_frame_duration=configuration.last_frame_duration) as gif_writer:
        for index, frame in enumerate(frames):
            # The animation always starts with the first frame
            timestamp = 0.0 if index == 0 else frame.time
            image = renderer.render(frame.lines, frame.cursor)
            gif_writer.add_frame_rgba(index, image, timestamp)
            count += 1

    logger.info('Rendered {} frames in {:.2f}s'.format(count, time.monotonic() - start))
    return count


def main(args=None):
    if args is None:
        args = sys.argv

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_formatter = logging.Formatter('%(message)s')
    console_handler.setFormatter(console_formatter)
    logger.handlers = [console_handler]
    logger.setLevel(logging.INFO)

    themes = config.default_themes()
    args = parse(args[1:], themes)

    if args.verbose:
        _, log_filename = tempfile.mkstemp(prefix='termtogif_', suffix='.log')
        file_handler = logging.FileHandler(filename=log_filename, mode='w')
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        file_handler.setFormatter(file_formatter)
        logger.handlers.append(file_handler)
        logger.setLevel(logging.DEBUG)
        logger.info('Logging to {}'.format(log_filename))

    configuration = config.Config(columns=args.cols,
                                  rows=args.rows,
                                  font_dirs=args.font_dirs,
                                  font_family=args.font_family,
                                  font_size=args.font_size,
                                  fps_cap=args.fps_cap,
                                  idle_time_limit=args.idle_time_limit,
                                  last_frame_duration=args.last_frame_duration,
                                  line_height=args.line_height,
                                  no_loop=args.no_loop,
                                  renderer=args.renderer,
                                  speed=args.speed,
                                  theme=args.theme,
                                  skip_invalid_events=args.skip_invalid_events)

    logger.info('Rendering started')
    exit_code = 0
    try:
        with open_input(args.input) as lines:
            cast = asciicast.open_cast(lines, configuration.skip_invalid_events)
            with open_output(args.output) as output:
                render(cast, output, configuration, themes)
    except FATAL_ERRORS as exc:
        logger.error('Error: {}'.format(exc))
        exit_code = 1
    else:
        logger.info('Rendering ended, GIF animation is {}'.format(args.output))

    for handler in logger.handlers:
        handler.close()
    return exit_code
