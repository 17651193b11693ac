"""asciicast recordings

This module reads terminal session recordings in asciicast v1, v2 or v3
format and turns them into a header and a stream of output events. The
specifications of the formats are available here:
    [1] https://docs.asciinema.org/manual/asciicast/v1/
    [2] https://docs.asciinema.org/manual/asciicast/v2/
    [3] https://docs.asciinema.org/manual/asciicast/v3/

Whatever the version of the recording, events are returned as
(time, data) tuples where `time` is the number of seconds elapsed since
the beginning of the recording. Only events captured on the output of the
terminal are returned.
"""
import json
import logging
from collections import namedtuple

from termtogif.theme import Theme

logger = logging.getLogger(__name__)

COMMENT_PREFIX = '#'
OUTPUT_CODE = 'o'


class AsciiCastError(Exception):
    pass


class FormatError(AsciiCastError):
    """The recording does not match any supported asciicast version"""


class EventError(AsciiCastError):
    """An event record of the recording is invalid"""


_Header = namedtuple('Header', ['columns', 'rows', 'theme', 'idle_time_limit'])


class Header(_Header):
    """Header of a recording

    columns: Initial number of columns of the terminal
    rows: Initial number of rows of the terminal
    theme: Color theme embedded in the recording (None if missing)
    idle_time_limit: Maximum time between two events (None if missing)
    """
    types = {
        'columns': int,
        'rows': int,
        'theme': (type(None), Theme),
        'idle_time_limit': (type(None), int, float),
    }

    def __new__(cls, columns, rows, theme=None, idle_time_limit=None):
        self = super().__new__(cls, columns, rows, theme, idle_time_limit)
        for attr_name in cls._fields:
            attr = getattr(self, attr_name)
            if isinstance(attr, bool) or not isinstance(attr, cls.types[attr_name]):
                raise AsciiCastError('Invalid type for attribute {}: {} (expected one of {})'
                                     .format(attr_name, type(attr), cls.types[attr_name]))
        return self


Asciicast = namedtuple('Asciicast', ['header', 'events'])
Asciicast.__doc__ = 'Header of a recording and iterator over its output events'


def _loads(line):
    try:
        return json.loads(line)
    except ValueError as exc:
        raise AsciiCastError('Invalid JSON: {}'.format(_truncate(line))) from exc


def _decode(line, error_cls):
    """Return `line` as text, raising `error_cls` if it is not valid UTF-8"""
    if not isinstance(line, bytes):
        return line
    try:
        return line.decode('utf-8')
    except UnicodeDecodeError as exc:
        raise error_cls('Invalid UTF-8 data: {!r}'.format(line[:40])) from exc


def _truncate(line):
    line = line.rstrip('\r\n')
    return line if len(line) < 40 else '{}...'.format(line[:40])


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _embedded_theme(attributes):
    theme = attributes.get('theme')
    if theme is None:
        return None
    if not isinstance(theme, dict):
        raise AsciiCastError('Invalid theme: {!r}'.format(theme))
    return Theme.from_asciicast(theme.get('fg'), theme.get('bg'), theme.get('palette'))


def _parse_event_record(line):
    """Return the (time, code, data) triple of an event line"""
    try:
        time, code, data = json.loads(line)
    except (ValueError, TypeError) as exc:
        raise EventError('Invalid event record: {}'.format(_truncate(line))) from exc

    if not _is_number(time):
        raise EventError('Invalid event time: {}'.format(_truncate(line)))
    if not isinstance(code, str) or not code:
        raise EventError('Missing event code: {}'.format(_truncate(line)))
    if not isinstance(data, str):
        raise EventError('Invalid event data: {}'.format(_truncate(line)))
    return time, code, data


class _Parser:
    """Line by line parser of an asciicast file

    Subclasses decode the header line in `open` (raising AsciiCastError if
    the line is not a header of their version) and convert event records
    to output events in `parse_event`.
    """
    version = None

    def __init__(self, header):
        self.header = header

    def parse_event(self, line):
        raise NotImplementedError

    def events(self, lines, skip_invalid=False):
        for line in lines:
            try:
                line = _decode(line, EventError)
                stripped = line.strip()
                if not stripped or stripped.startswith(COMMENT_PREFIX):
                    continue
                event = self.parse_event(stripped)
            except EventError as exc:
                if not skip_invalid:
                    raise
                logger.warning('Skipping event record: {}'.format(exc))
                continue

            if event is not None:
                yield event


class _V3Parser(_Parser):
    version = 3

    def __init__(self, header):
        super().__init__(header)
        self.prev_time = 0.0

    @classmethod
    def open(cls, line):
        attributes = _loads(line)
        if not isinstance(attributes, dict) or attributes.get('version') != cls.version:
            raise AsciiCastError('Not an asciicast v3 header')

        term = attributes.get('term')
        if not isinstance(term, dict):
            raise AsciiCastError('Missing "term" attribute in asciicast v3 header')

        header = Header(term.get('cols'), term.get('rows'), _embedded_theme(term),
                        attributes.get('idle_time_limit'))
        return cls(header)

    def parse_event(self, line):
        interval, code, data = _parse_event_record(line)
        # Intervals of every event count, whatever their type
        self.prev_time += interval
        if code == OUTPUT_CODE:
            return self.prev_time, data
        return None


class _V2Parser(_Parser):
    version = 2

    @classmethod
    def open(cls, line):
        attributes = _loads(line)
        if not isinstance(attributes, dict) or attributes.get('version') != cls.version:
            raise AsciiCastError('Not an asciicast v2 header')

        header = Header(attributes.get('width'), attributes.get('height'),
                        _embedded_theme(attributes), attributes.get('idle_time_limit'))
        return cls(header)

    def parse_event(self, line):
        time, code, data = _parse_event_record(line)
        if code == OUTPUT_CODE:
            return time, data
        return None


# Header parsers by order of priority, newest version first
PARSERS = (_V3Parser, _V2Parser)


def _read_v1(data, skip_invalid=False):
    """Decode a complete asciicast v1 document

    Event times in v1 recordings are delays relative to the previous event.
    """
    json_dict = _loads(data)
    if not isinstance(json_dict, dict):
        raise AsciiCastError('Invalid asciicast v1 document')

    missing_attributes = {'version', 'width', 'height', 'stdout'} - set(json_dict)
    if missing_attributes:
        raise AsciiCastError('Missing attributes in asciicast v1 file: {}'
                             .format(missing_attributes))
    if json_dict['version'] != 1:
        raise AsciiCastError('Not an asciicast v1 file')

    header = Header(json_dict['width'], json_dict['height'])
    stdout = json_dict['stdout']
    if not isinstance(stdout, list):
        raise AsciiCastError('Invalid type for stdout attribute (expected list): {!r}'
                             .format(stdout))

    def events():
        time = 0.0
        for event in stdout:
            try:
                delay, event_data = event
            except (ValueError, TypeError):
                delay, event_data = None, None
            if not _is_number(delay) or not isinstance(event_data, str):
                if skip_invalid:
                    logger.warning('Skipping invalid event record: {!r}'.format(event))
                    continue
                raise EventError('Invalid type for event: got object {!r} but expected '
                                 'a [delay, data] pair'.format(event))
            time += delay
            yield time, event_data

    return Asciicast(header, events())


def open_cast(lines, skip_invalid=False):
    """Return the header and the output events of a recording

    `lines` is an iterable of the lines of the recording. The version of the
    format is determined from the first line; events are then decoded lazily.

    Raise FormatError if the recording matches no supported version. Iterating
    over the events raises EventError on the first invalid event record
    unless `skip_invalid` is set, in which case invalid records are logged
    and ignored.
    """
    lines = iter(lines)
    try:
        first_line = next(lines)
    except StopIteration:
        raise FormatError('Empty file') from None
    first_line = _decode(first_line, FormatError)

    for parser_cls in PARSERS:
        try:
            parser = parser_cls.open(first_line)
        except AsciiCastError:
            continue
        logger.debug('Reading asciicast v{} recording'.format(parser.version))
        return Asciicast(parser.header, parser.events(lines, skip_invalid))

    remaining = [_decode(line, FormatError) for line in lines]
    document = '\n'.join(line.rstrip('\r\n') for line in [first_line] + remaining)
    try:
        cast = _read_v1(document, skip_invalid)
    except AsciiCastError as exc:
        raise FormatError('Not an asciicast v1, v2 or v3 file') from exc
    logger.debug('Reading asciicast v1 recording')
    return cast
