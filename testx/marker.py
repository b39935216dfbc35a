# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Runtime side of the ``@testx`` marker.

The marker is consumed by the expander; at runtime it only tags the function
so an unexpanded test is never collected with unresolvable parameters.

    from testx import testx

    def setup() -> int:
        return 4711

    @testx
    def sample(num: int):
        assert num == 4711
"""

from typing import Callable, Optional, TypeVar, Union, overload

F = TypeVar("F", bound=Callable)

MARKER_ATTRIBUTE = "__testx__"


def _mark(func: F, setup: Optional[str], no_setup: bool) -> F:
    func.__test__ = False
    setattr(func, MARKER_ATTRIBUTE, {"setup": setup, "no_setup": no_setup})
    return func


@overload
def testx(func: F) -> F: ...


@overload
def testx(*, setup: Union[str, Callable, None] = None, no_setup: bool = False) -> Callable[[F], F]: ...


def testx(func=None, *, setup=None, no_setup=False):
    """Mark a function for expansion.

    Args:
        func: The test function (bare ``@testx`` form)
        setup: Name of, or reference to, the sibling setup function
        no_setup: Never bind a setup value, even if ``setup`` exists

    Raises:
        ValueError: If both setup and no_setup are given
    """
    if setup is not None and no_setup:
        raise ValueError("setup and no_setup cannot be combined")
    setup_name = getattr(setup, "__name__", setup)

    if func is not None:
        return _mark(func, setup_name, no_setup)

    def decorator(f):
        return _mark(f, setup_name, no_setup)

    return decorator


testx.__test__ = False


def is_marked(func: Callable) -> bool:
    """True when func carries an unexpanded testx marker."""
    return hasattr(func, MARKER_ATTRIBUTE)
