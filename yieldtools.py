from operator        import add
from functools       import wraps
from contextlib      import contextmanager, ExitStack
from collections.abc import Iterable
from queue           import SimpleQueue as Queue
from threading       import Thread

import itertools as it
import logging


log = logging.getLogger('yieldtools')


# A sequence is any callable taking a `consume` callback:
#
#     def producer(consume):
#         for item in ...:
#             if not consume(item):
#                 return
#
# `consume` returns whether it wants more. The producer must return within one
# step of being told to stop, must never report an element twice, and ends
# silently both when it runs dry and when it is stopped.


class seq:

    def __init__(self, producer):
        self._producer = producer

    def __call__(self, consume):
        self._producer(consume)

    def __iter__(self):
        with cursor(self) as source:
            while True:
                item, more = source.advance()
                if not more:
                    return
                yield item

    def __repr__(self):
        name = getattr(self._producer, '__qualname__', repr(self._producer))
        return f'seq({name})'


def producer(factory):
    @wraps(factory)
    def make(*args, **kwds):
        return seq(factory(*args, **kwds))
    return make


# Plain python values have implicit interpretations as sequences
def as_seq(thing):
    if isinstance(thing, seq     ): return thing
    if isinstance(thing, Iterable): return from_iterable(thing)
    if callable(thing)            : return seq(thing)
    raise NotASequence(f'Cannot use {thing!r} as a sequence')


class _Relay:

    # Forwards to `consume`, remembering whether it asked to stop.
    def __init__(self, consume):
        self.consume = consume
        self.stopped = False
        self.seen    = 0

    def __call__(self, item):
        if self.stopped:
            return False
        self.seen += 1
        self.stopped = not self.consume(item)
        return not self.stopped

######################################################################
#    Cursor: pulling from a pushing producer                         #
######################################################################

class FINISHED: pass
class FAILED  : pass
class VALUE   : pass

PULL, STOP = True, False


class cursor:

    """Pull interface onto a sequence.

    The producer runs on a worker thread, but never concurrently with the
    caller: the worker only runs between a request from `advance` (or
    `release`) and its reply. `advance` returns `(item, True)` or
    `(None, False)`; once it has returned `(None, False)`, or after `release`,
    it does so forever without touching the producer.
    """

    _serial = it.count(1)

    def __init__(self, sequence):
        self._sequence = as_seq(sequence)
        self._requests = Queue()
        self._replies  = Queue()
        self._worker   = None
        self._finished = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.release()

    def advance(self):
        if self._finished:
            return None, False
        if self._worker is None: self._start()
        else                   : self._requests.put(PULL)
        kind, payload = self._replies.get()
        if kind is VALUE:
            return payload, True
        self._join()
        if kind is FAILED:
            log.debug('%s: producer raised %r', self._worker.name, payload)
            raise payload
        log.debug('%s: exhausted', self._worker.name)
        return None, False

    def release(self):
        if self._finished:
            return
        if self._worker is None:
            self._finished = True
            return
        self._requests.put(STOP)
        kind, payload = self._replies.get()
        self._join()
        log.debug('%s: released', self._worker.name)
        if kind is FAILED:
            raise payload

    def _start(self):
        name = f'yieldtools-cursor-{next(cursor._serial)}'
        self._worker = Thread(target=self._run, name=name, daemon=True)
        log.debug('%s: starting %r', name, self._sequence)
        self._worker.start()

    def _join(self):
        self._finished = True
        self._worker.join()

    # Runs on the worker thread
    def _run(self):
        listening = True
        def consume(item):
            nonlocal listening
            if not listening:
                return False
            self._replies.put((VALUE, item))
            listening = self._requests.get() is PULL
            return listening
        try:
            self._sequence(consume)
        except BaseException as e:
            self._replies.put((FAILED, e))
        else:
            self._replies.put((FINISHED, None))


def release_all(cursors):
    with ExitStack() as stack:
        for c in cursors:
            stack.callback(c.release)


@contextmanager
def pulling(*sequences):
    cursors = tuple(map(cursor, sequences))
    try:     yield cursors
    finally: release_all(cursors)

######################################################################
#    Simple producers                                                #
######################################################################

@producer
def from_iterable(iterable):
    def from_iterable_loop(consume):
        for item in iterable:
            if not consume(item):
                return
    return from_iterable_loop


def from_values(*values): return from_iterable(values)


@producer
def repeat(value, times=None):
    if times is not None and times < 0: raise ValueError('repeat requires times >= 0')
    def repeat_loop(consume):
        for _ in (it.count() if times is None else range(times)):
            if not consume(value):
                return
    return repeat_loop


@producer
def count(start=0, step=1):
    def count_loop(consume):
        for n in it.count(start, step):
            if not consume(n):
                return
    return count_loop


@producer
def cycle(sequence):
    sequence = as_seq(sequence)
    def cycle_loop(consume):
        while True:
            relay = _Relay(consume)
            sequence(relay)
            if relay.stopped or not relay.seen:
                return
    return cycle_loop


@producer
def chain(*sequences):
    sequences = tuple(map(as_seq, sequences))
    def chain_loop(consume):
        relay = _Relay(consume)
        for sequence in sequences:
            sequence(relay)
            if relay.stopped:
                return
    return chain_loop

######################################################################
#    Single-pass transforms                                          #
######################################################################

@producer
def enumerate_(sequence, start=0):
    sequence = as_seq(sequence)
    def enumerate_loop(consume):
        index = it.count(start)
        sequence(lambda item: consume((next(index), item)))
    return enumerate_loop


@producer
def map_(fn, sequence):
    sequence = as_seq(sequence)
    def map_loop(consume):
        sequence(lambda item: consume(fn(item)))
    return map_loop


@producer
def filter_(predicate, sequence):
    sequence = as_seq(sequence)
    def filter_loop(consume):
        sequence(lambda item: consume(item) if predicate(item) else True)
    return filter_loop


def filterfalse(predicate, sequence):
    return filter_(lambda item: not predicate(item), sequence)


@producer
def takewhile(predicate, sequence):
    sequence = as_seq(sequence)
    def takewhile_loop(consume):
        sequence(lambda item: bool(predicate(item)) and consume(item))
    return takewhile_loop


@producer
def dropwhile(predicate, sequence):
    sequence = as_seq(sequence)
    def dropwhile_loop(consume):
        dropping = True
        def drop_then_consume(item):
            nonlocal dropping
            if dropping and predicate(item):
                return True
            dropping = False
            return consume(item)
        sequence(drop_then_consume)
    return dropwhile_loop


class NO_INITIAL: pass


@producer
def accumulate(sequence, fn=add, initial=NO_INITIAL):
    sequence = as_seq(sequence)
    def accumulate_loop(consume):
        total  = initial
        seeded = initial is not NO_INITIAL
        def fold(item):
            nonlocal total, seeded
            total  = fn(total, item) if seeded else item
            seeded = True
            return consume(total)
        sequence(fold)
    return accumulate_loop


@producer
def batched(sequence, n):
    if n < 1: raise ValueError('batched requires n >= 1')
    sequence = as_seq(sequence)
    def batched_loop(consume):
        batch = []
        def fill(item):
            batch.append(item)
            if len(batch) < n:
                return True
            full = tuple(batch)
            batch.clear()
            return consume(full)
        sequence(fill)
        # Only a short final batch can be left over: full ones are sent at once
        if batch:
            consume(tuple(batch))
    return batched_loop


@producer
def compress(sequence, selectors):
    sequence  = as_seq(sequence)
    selectors = as_seq(selectors)
    def compress_loop(consume):
        with cursor(selectors) as selecting:
            def select(item):
                selected, more = selecting.advance()
                if not more:
                    return False
                return consume(item) if selected else True
            sequence(select)
    return compress_loop


@producer
def slice_(sequence, *args):
    spec = slice(*args)
    start, stop, step = spec.start, spec.stop, spec.step
    if start is not None and start <  0: raise ValueError('slice requires start >= 0')
    if stop  is not None and stop  <  0: raise ValueError('slice requires stop >= 0')
    if step  is not None and step  <= 0: raise ValueError('slice requires step > 0')

    if start is None: start = 0
    if step  is None: step  = 1
    sequence = as_seq(sequence)

    def slice_loop(consume):
        if stop is not None and stop <= start:
            return
        position = it.count()
        def select(item):
            here = next(position)
            if here >= start and (here - start) % step == 0:
                if not consume(item):
                    return False
            return stop is None or here + 1 < stop
        sequence(select)
    return slice_loop


def tee(sequence, n=2):
    if n < 0: raise ValueError('tee requires n >= 0')
    sequence = as_seq(sequence)
    return (sequence,) * n

######################################################################
#    Pairing and merging: operators that pull                        #
######################################################################

@producer
def take(sequence, n):
    if n < 0: raise ValueError('take requires n >= 0')
    sequence = as_seq(sequence)
    def take_loop(consume):
        with cursor(sequence) as source:
            for _ in range(n):
                item, more = source.advance()
                if not more or not consume(item):
                    return
    return take_loop


def _advance_all(cursors):
    items = []
    for source in cursors:
        item, more = source.advance()
        if not more:
            return None, False
        items.append(item)
    return tuple(items), True


@producer
def zip_(*sequences):
    sequences = tuple(map(as_seq, sequences))
    def zip_loop(consume):
        if not sequences:
            return
        with pulling(*sequences) as cursors:
            while True:
                items, more = _advance_all(cursors)
                if not more or not consume(items):
                    return
    return zip_loop


def _pull_zip(*sequences):
    cursors = tuple(map(cursor, sequences))
    exhausted = False

    def advance():
        nonlocal exhausted
        if exhausted:
            return None, False
        items, more = _advance_all(cursors)
        exhausted = not more
        return items, more

    def release():
        release_all(cursors)

    return advance, release


def pull_zip3(s0, s1, s2    ): return _pull_zip(s0, s1, s2    )
def pull_zip4(s0, s1, s2, s3): return _pull_zip(s0, s1, s2, s3)


@producer
def pairwise(sequence):
    sequence = as_seq(sequence)
    def pairwise_loop(consume):
        with cursor(sequence) as source:
            previous, more = source.advance()
            while more:
                current, more = source.advance()
                if not more or not consume((previous, current)):
                    return
                previous = current
    return pairwise_loop


@producer
def groupby(sequence):
    """Runs of equal consecutive elements, as `(key, members)` pairs.

    The key is the first element of the run. `members` shares the cursor on
    the source with `groupby` itself, so it must be consumed before the next
    group is requested; whatever is left of it is skipped at that point, and
    from then on it is empty.
    """
    sequence = as_seq(sequence)
    def groupby_loop(consume):
        with cursor(sequence) as source:
            head, more = source.advance()
            while more:
                group = _Group(source, head)
                try:
                    if not consume((group.key, seq(group))):
                        return
                    head, more = group.drain()
                finally:
                    group.leave()
    return groupby_loop


class _Group:

    def __init__(self, source, head):
        self.key        = head
        self._source    = source
        self._head_sent = False
        self._running   = True            # run of equal elements not yet ended
        self._left      = False           # groupby has moved on
        self._following = (None, False)   # first pull after the run

    def __call__(self, consume):
        if self._left:
            return
        if not self._head_sent:
            self._head_sent = True
            if not consume(self.key):
                return
        while self._running:
            item, more = self._pull()
            if not more or not consume(item):
                return

    def _pull(self):
        item, more = self._source.advance()
        if more and item == self.key:
            return item, True
        self._running   = False
        self._following = item, more
        return None, False

    def drain(self):
        while self._running:
            self._pull()
        return self._following

    def leave(self):
        self._left = True

######################################################################
#    Combinatorial generators                                        #
######################################################################

# Each of these takes a finite collection and materializes it once. The index
# state is mutated in place; every emitted tuple is freshly built from it.

def _pick(pool, indices):
    return tuple(pool[i] for i in indices)


@producer
def combinations(pool, r):
    if r < 0: raise ValueError('combinations requires r >= 0')
    pool = tuple(pool)
    n = len(pool)
    def combinations_loop(consume):
        if r > n:
            return
        indices = list(range(r))
        if not consume(_pick(pool, indices)):
            return
        while True:
            for i in reversed(range(r)):
                if indices[i] != i + n - r:
                    break
            else:
                return
            indices[i] += 1
            for j in range(i + 1, r):
                indices[j] = indices[j - 1] + 1
            if not consume(_pick(pool, indices)):
                return
    return combinations_loop


@producer
def combinations_with_replacement(pool, r):
    if r < 0: raise ValueError('combinations_with_replacement requires r >= 0')
    pool = tuple(pool)
    n = len(pool)
    def combinations_with_replacement_loop(consume):
        if not n:
            return
        indices = [0] * r
        if not consume(_pick(pool, indices)):
            return
        while True:
            for i in reversed(range(r)):
                if indices[i] != n - 1:
                    break
            else:
                return
            indices[i:] = [indices[i] + 1] * (r - i)
            if not consume(_pick(pool, indices)):
                return
    return combinations_with_replacement_loop


@producer
def permutations(pool, r=None):
    pool = tuple(pool)
    n = len(pool)
    if r is None: r = n
    if r < 0: raise ValueError('permutations requires r >= 0')
    def permutations_loop(consume):
        if r > n:
            return
        indices = list(range(n))
        cycles  = list(range(n, n - r, -1))
        if not consume(_pick(pool, indices[:r])):
            return
        while True:
            for i in reversed(range(r)):
                cycles[i] -= 1
                if cycles[i] == 0:
                    indices[i:] = indices[i + 1:] + indices[i:i + 1]
                    cycles[i] = n - i
                else:
                    j = n - cycles[i]
                    indices[i], indices[j] = indices[j], indices[i]
                    if not consume(_pick(pool, indices[:r])):
                        return
                    break
            else:
                return
    return permutations_loop


@producer
def product(*pools):
    pools = tuple(map(tuple, pools))
    def product_loop(consume):
        # A pool with nothing in it leaves nothing to choose
        if not all(pools):
            return
        indices = [0] * len(pools)
        while True:
            if not consume(tuple(pool[i] for pool, i in zip(pools, indices))):
                return
            for position in reversed(range(len(pools))):
                indices[position] += 1
                if indices[position] < len(pools[position]):
                    break
                indices[position] = 0
            else:
                return
    return product_loop


def product_repeat(pool, k):
    if k < 0: raise ValueError('product_repeat requires k >= 0')
    pool = tuple(pool)
    return product(*it.repeat(pool, k))

######################################################################
#    Consumers                                                       #
######################################################################

def push(sequence, fn):
    def consume_all(item):
        fn(item)
        return True
    as_seq(sequence)(consume_all)


def collect(sequence, consumer=list):
    items = []
    push(sequence, items.append)
    return consumer(items)

######################################################################

class YieldToolsException(Exception): pass
class NotASequence(YieldToolsException, TypeError): pass
