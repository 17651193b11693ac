"""Timing transformations of output events

Each function of this module consumes an iterable of (time, data) events
and lazily yields (time, data) events. Events are never reordered and the
output data is never dropped. The transformations are meant to be chained
in this order: limit_idle_time, accelerate, batch.
"""


def limit_idle_time(events, limit):
    """Reduce to `limit` seconds any pause longer than `limit` seconds

    The time removed from a pause is removed from all the following events
    so that shorter pauses are preserved exactly.
    """
    prev_time = 0.0
    offset = 0.0
    for time, data in events:
        delay = time - prev_time
        if delay > limit:
            offset += delay - limit
        # Delays are measured on the original timeline
        prev_time = time
        yield time - offset, data


def accelerate(events, speed):
    """Divide the time of every event by `speed`"""
    for time, data in events:
        yield time / speed, data


def batch(events, fps_cap):
    """Merge events occurring less than 1/fps_cap seconds after the first
    event of the current batch

    The merged event has the time of the first event of the batch and the
    concatenated data of all the events of the batch. Batches with no data
    are never emitted: their time is replaced by the time of the next event
    starting a batch.
    """
    max_frame_time = 1.0 / fps_cap
    batch_time = 0.0
    batch_data = ''
    for time, data in events:
        if time - batch_time < max_frame_time:
            batch_data += data
            continue

        if batch_data:
            yield batch_time, batch_data
        batch_time, batch_data = time, data

    if batch_data:
        yield batch_time, batch_data
