from __future__ import annotations

from hypothesis import strategies as st


def strength_strategy(min_val: int = 1, max_val: int = 5000) -> st.SearchStrategy[int]:
    return st.integers(min_value=min_val, max_value=max_val)


def army_strengths_strategy(
    min_size: int = 1, max_size: int = 3, min_val: int = 100, max_val: int = 3000
) -> st.SearchStrategy[list[int]]:
    return st.lists(strength_strategy(min_val, max_val), min_size=min_size, max_size=max_size)


def population_strategy() -> st.SearchStrategy[int]:
    return st.integers(min_value=0, max_value=2_000_000)


def stability_strategy() -> st.SearchStrategy[int]:
    return st.integers(min_value=-50, max_value=150)
