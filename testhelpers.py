from threading import enumerate as live_threads

from yieldtools import seq


def symbolic_apply(f ): return lambda x   : f'{f}({x})'
def symbolic_binop(op): return lambda l, r: f'({l} {op} {r})'
def symbolic_functions(names): return map(symbolic_apply, names)
sym_add = symbolic_binop('+')
sym_mul = symbolic_binop('*')

def square(n): return n * n
def odd   (n): return n % 2 != 0
def even  (n): return n % 2 == 0


class END:  pass


def traced(items, trace):
    # A sequence that records every element it emits, and END when it returns
    def traced_loop(consume):
        try:
            for item in items:
                trace.append(item)
                if not consume(item):
                    return
        finally:
            trace.append(END)
    return seq(traced_loop)


def failing(items, exception):
    def failing_loop(consume):
        for item in items:
            if not consume(item):
                return
        raise exception
    return seq(failing_loop)


def first(n, sequence):
    # Push-side early stop: ask for no more than `n` elements
    got = []
    def consume(item):
        got.append(item)
        return len(got) < n
    if n:
        sequence(consume)
    return got


def live_cursors():
    return [t for t in live_threads() if t.name.startswith('yieldtools-cursor')]
