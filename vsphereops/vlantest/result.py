"""Explicit success/failure values for provisioning calls.

Infrastructure clients return ``Ok`` or ``Err`` from every call that creates
or reconfigures ephemeral resources, so the verifier can turn a failure into a
result row instead of unwinding the whole host pass.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Callable, Generic, ParamSpec, TypeVar, Union

from vsphereops.vlantest.exceptions import ProvisioningError

T = TypeVar("T")
P = ParamSpec("P")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: ProvisioningError

    @property
    def message(self) -> str:
        return str(self.error)


Result = Union[Ok[T], Err]


def returns_result(func: Callable[P, T]) -> Callable[P, Result[T]]:
    """Decorator turning a raising provisioning call into a ``Result``.

    ``ProvisioningError`` becomes ``Err`` as-is; any other exception raised by
    the underlying API is wrapped in a ``ProvisioningError`` first.

    Usage::

        @returns_result
        def set_vlan(self, network, vlan_id):
            ...
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[T]:
        try:
            return Ok(func(*args, **kwargs))
        except ProvisioningError as e:
            return Err(e)
        except Exception as e:
            return Err(ProvisioningError(f"{func.__name__} failed: {e}"))

    return wrapper
