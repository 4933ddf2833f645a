import itertools as it
from math import comb, perm

from pytest import mark, raises
parametrize = mark.parametrize

from hypothesis            import given
from hypothesis.strategies import integers
from hypothesis.strategies import lists

from testhelpers import *


small_pools  = lists(integers(min_value=0, max_value=9), max_size=6)
small_rs     = integers(min_value=0, max_value=7)
product_args = lists(lists(integers(min_value=0, max_value=9), max_size=3), max_size=4)


def is_lexicographic(tuples):
    return all(a < b for a, b in zip(tuples, tuples[1:]))

###################################################################
#    Examples                                                     #
###################################################################

def test_combinations_example():
    from yieldtools import combinations, collect
    assert collect(combinations('abc', 2)) == [('a', 'b'), ('a', 'c'), ('b', 'c')]


def test_permutations_example():
    from yieldtools import permutations, collect
    assert collect(permutations([1, 2, 3], 2)) == [(1, 2), (1, 3), (2, 1), (2, 3), (3, 1), (3, 2)]


def test_product_example():
    from yieldtools import product, collect
    assert collect(product([1, 2], 'ab')) == [(1, 'a'), (1, 'b'), (2, 'a'), (2, 'b')]


def test_combinations_with_replacement_example():
    from yieldtools import combinations_with_replacement, collect
    expected = [('a', 'a'), ('a', 'b'), ('a', 'c'), ('b', 'b'), ('b', 'c'), ('c', 'c')]
    assert collect(combinations_with_replacement('abc', 2)) == expected


def test_product_repeat_example():
    from yieldtools import product_repeat, collect
    assert collect(product_repeat('01', 2)) == [('0', '0'), ('0', '1'), ('1', '0'), ('1', '1')]

###################################################################
#    Properties                                                   #
###################################################################

@given(small_pools, small_rs)
def test_combinations(pool, r):
    from yieldtools import combinations, collect
    got = collect(combinations(pool, r))
    assert len(got) == (comb(len(pool), r) if r <= len(pool) else 0)
    assert got == list(it.combinations(pool, r))


@given(small_rs, small_rs)
def test_combinations_indices_increase_lexicographically(n, r):
    from yieldtools import combinations, collect
    got = collect(combinations(range(n), r))
    assert all(list(c) == sorted(set(c)) for c in got)
    assert is_lexicographic(got)


@given(small_pools, small_rs)
def test_combinations_with_replacement(pool, r):
    from yieldtools import combinations_with_replacement, collect
    got = collect(combinations_with_replacement(pool, r))
    if pool:
        assert len(got) == comb(len(pool) + r - 1, r)
        assert got == list(it.combinations_with_replacement(pool, r))
    else:
        assert got == []


@given(small_rs, small_rs)
def test_combinations_with_replacement_indices_never_decrease(n, r):
    from yieldtools import combinations_with_replacement, collect
    got = collect(combinations_with_replacement(range(n), r))
    assert all(list(c) == sorted(c) for c in got)
    assert is_lexicographic(got)


@given(small_pools, small_rs)
def test_permutations(pool, r):
    from yieldtools import permutations, collect
    got = collect(permutations(pool, r))
    assert len(got) == (perm(len(pool), r) if r <= len(pool) else 0)
    assert got == list(it.permutations(pool, r))


@given(integers(min_value=0, max_value=5), small_rs)
def test_permutations_of_distinct_indices(n, r):
    from yieldtools import permutations, collect
    got = collect(permutations(range(n), r))
    assert all(len(set(p)) == len(p) == r for p in got)
    assert len(set(got)) == len(got)
    assert is_lexicographic(got)


@given(small_pools)
def test_permutations_default_to_full_length(pool):
    from yieldtools import permutations, collect
    assert collect(permutations(pool)) == list(it.permutations(pool))


@given(product_args)
def test_product(pools):
    from yieldtools import product, collect
    got = collect(product(*pools))
    size = 1
    for pool in pools:
        size *= len(pool)
    assert len(got) == size
    assert got == list(it.product(*pools))


@given(lists(integers(min_value=0, max_value=9), max_size=3),
       integers(min_value=0, max_value=4))
def test_product_repeat(pool, k):
    from yieldtools import product_repeat, collect
    assert collect(product_repeat(pool, k)) == list(it.product(pool, repeat=k))

###################################################################
#    Edge cases                                                   #
###################################################################

@parametrize('n', (0, 3))
def test_combinations_of_nothing_is_one_empty_tuple(n):
    from yieldtools import combinations, collect
    assert collect(combinations(range(n), 0)) == [()]


def test_combinations_too_large_r_is_empty():
    from yieldtools import combinations, collect
    assert collect(combinations('abc', 4)) == []


def test_combinations_with_replacement_of_empty_pool_is_empty():
    from yieldtools import combinations_with_replacement, collect
    assert collect(combinations_with_replacement([], 0)) == []
    assert collect(combinations_with_replacement([], 2)) == []
    assert collect(combinations_with_replacement('ab', 0)) == [()]


def test_permutations_of_empty_pool():
    from yieldtools import permutations, collect
    assert collect(permutations([], 0)) == [()]
    assert collect(permutations([])   ) == [()]
    assert collect(permutations([], 1)) == []


def test_product_of_no_pools_is_one_empty_tuple():
    from yieldtools import product, collect
    assert collect(product()) == [()]


def test_product_with_empty_pool_is_empty():
    from yieldtools import product, collect
    assert collect(product('ab', [], 'cd')) == []


def test_product_repeat_zero_times():
    from yieldtools import product_repeat, collect
    assert collect(product_repeat('ab', 0)) == [()]


@parametrize('generator',
             ('combinations', 'combinations_with_replacement', 'permutations', 'product_repeat'))
def test_negative_sizes_raise_ValueError(generator):
    import yieldtools
    with raises(ValueError):
        getattr(yieldtools, generator)('abc', -1)


def test_pool_is_materialized_once():
    from yieldtools import combinations, collect
    s = combinations(iter('abc'), 2)
    assert collect(s) == collect(s) == [('a', 'b'), ('a', 'c'), ('b', 'c')]


def test_every_emission_is_a_fresh_tuple():
    from yieldtools import product, collect
    got = collect(product('ab', 'cd'))
    assert all(type(t) is tuple for t in got)
    assert len(set(map(id, got))) == len(got)


@parametrize('generator, args, expected',
             (('combinations'                 , ('abcd', 2)  , [('a', 'b'), ('a', 'c')]),
              ('combinations_with_replacement', ('abcd', 2)  , [('a', 'a'), ('a', 'b')]),
              ('permutations'                 , ('abcd', 2)  , [('a', 'b'), ('a', 'c')]),
              ('product'                      , ('ab', 'cd') , [('a', 'c'), ('a', 'd')]),
              ('product_repeat'               , ('ab', 2)    , [('a', 'a'), ('a', 'b')]),
             ))
def test_generators_stop_when_consumer_stops(generator, args, expected):
    import yieldtools
    seen = []
    def consume(item):
        seen.append(item)
        return len(seen) < 2
    getattr(yieldtools, generator)(*args)(consume)
    assert seen == expected


def test_combinatorial_generators_compose_with_pulling_operators():
    from yieldtools import combinations, permutations, zip_, take, collect
    got = collect(take(zip_(combinations('abc', 2), permutations('xyz')), 2))
    assert got == [(('a', 'b'), ('x', 'y', 'z')),
                   (('a', 'c'), ('x', 'z', 'y'))]
