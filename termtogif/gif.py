"""Animated GIF encoding

Frames are handed over to a GifWriter by the rendering thread and encoded by
a separate writer thread. The two threads communicate through a bounded
queue so that rendering and encoding overlap without unbounded buffering.
"""
import contextlib
import logging
import queue
import threading

from PIL import Image

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 16

# Marks the end of the frame stream in the queue
_END = object()


class EncodingError(Exception):
    pass


def _frame_durations(images, timestamps, last_frame_duration):
    """Return the images to keep and their durations in milliseconds

    GIF delays are expressed in centiseconds. Timestamps are rounded to the
    closest centisecond before computing delays so that rounding errors do
    not accumulate. Frames lasting less than a centisecond are dropped in
    favor of the following frame.
    """
    ticks = [int(round(100 * timestamp)) for timestamp in timestamps]
    kept = [index for index in range(len(images))
            if index == len(images) - 1 or ticks[index + 1] > ticks[index]]
    ticks = [ticks[index] for index in kept]

    durations = [10 * (end - start) for start, end in zip(ticks, ticks[1:])]
    durations.append(10 * max(int(round(100 * last_frame_duration)), 1))
    return [images[index] for index in kept], durations


class GifWriter:
    """Frame collector and GIF writer

    `add_frame_rgba` is called by the producer thread, `write` runs in the
    writer thread.

    :param width: Width of the frames in pixels
    :param height: Height of the frames in pixels
    :param repeat: Loop the animation forever if True, play it once otherwise
    :param last_frame_duration: Duration of the last frame in seconds
    """
    def __init__(self, width, height, repeat=True, last_frame_duration=3.0,
                 queue_size=DEFAULT_QUEUE_SIZE):
        self.width = width
        self.height = height
        self.repeat = repeat
        self.last_frame_duration = last_frame_duration
        self.error = None
        self._queue = queue.Queue(maxsize=queue_size)
        self._next_index = 0
        self._last_timestamp = None
        self._ended = False
        self._cancelled = False

    def add_frame_rgba(self, index, image, timestamp):
        """Queue a frame for encoding

        :param index: Position of the frame, starting at 0 with no gap
        :param image: numpy array of shape (height, width, 4) and type uint8
        :param timestamp: Presentation time of the frame in seconds
        """
        if self.error is not None:
            raise EncodingError('GIF writer failed: {}'.format(self.error)) from self.error
        if index != self._next_index:
            raise EncodingError('Frame #{} received, expected frame #{}'
                                .format(index, self._next_index))
        if self._last_timestamp is not None and timestamp < self._last_timestamp:
            raise EncodingError('Frame #{} goes back in time ({} < {})'
                                .format(index, timestamp, self._last_timestamp))
        if image.shape != (self.height, self.width, 4):
            raise EncodingError('Invalid frame size: {} (expected {})'
                                .format(image.shape, (self.height, self.width, 4)))

        self._next_index += 1
        self._last_timestamp = timestamp
        self._queue.put((index, image, timestamp))

    def cancel(self):
        """Discard the frames received so far instead of writing a GIF"""
        self._cancelled = True

    def close(self):
        """Signal the end of the frame stream to the writer thread"""
        self._queue.put(_END)

    def _frames(self):
        while True:
            item = self._queue.get()
            if item is _END:
                self._ended = True
                return
            yield item

    def _drain(self):
        if not self._ended:
            for _ in self._frames():
                pass

    def _write(self, output):
        images = []
        timestamps = []
        for index, image, timestamp in self._frames():
            logger.debug('Encoding frame #{} ({:.3f}s)'.format(index, timestamp))
            rgb_image = Image.fromarray(image).convert('RGB')
            images.append(rgb_image.quantize(colors=256, dither=Image.Dither.NONE))
            timestamps.append(timestamp)

        if self._cancelled:
            logger.debug('Encoding cancelled')
            return

        if not images:
            raise EncodingError('No frame to encode')

        images, durations = _frame_durations(images, timestamps, self.last_frame_duration)

        options = {}
        if self.repeat:
            options['loop'] = 0

        first, *others = images
        first.save(output, format='GIF', save_all=True, append_images=others,
                   duration=durations, optimize=False, **options)

    def write(self, output):
        """Encode queued frames until `close` is called and write the GIF"""
        try:
            self._write(output)
        except Exception as exc:
            # Reported to the producer thread, which keeps being unblocked
            self.error = exc
            self._drain()


@contextlib.contextmanager
def writer(output, width, height, repeat=True, last_frame_duration=3.0):
    """Run a GifWriter in a background thread for the duration of the context

    The writer thread is always joined on exit. Errors raised by the writer
    thread are raised as EncodingError once it has been joined.
    """
    gif_writer = GifWriter(width, height, repeat, last_frame_duration)
    thread = threading.Thread(target=gif_writer.write, args=(output,),
                              name='termtogif-writer', daemon=True)
    thread.start()
    try:
        yield gif_writer
    except BaseException:
        gif_writer.cancel()
        raise
    finally:
        gif_writer.close()
        thread.join()

    if gif_writer.error is not None:
        if isinstance(gif_writer.error, EncodingError):
            raise gif_writer.error
        raise EncodingError('Unable to write GIF: {}'.format(gif_writer.error)) \
            from gif_writer.error
