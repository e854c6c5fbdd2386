# src/document_references/base/lazy.py

"""
Deferred resolution of reference properties.

A :class:`LazyLoadingProxy` stands in for the value of a lazy reference. It
holds an :data:`Association` cell that starts as :class:`Deferred` and is
replaced in place by :class:`Resolved` on the first observable access.

The cell is not guarded by a lock. Concurrent first access from several
threads may resolve more than once; do not share an unresolved proxy across
threads without external synchronization.
"""

import logging
import operator
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

from document_references.base.descriptor import PropertyDescriptor
from document_references.base.interfaces import (DocumentConverter,
                                                 LookupFunction)

T = TypeVar("T")

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolved(Generic[T]):
    """An association whose value is known."""

    value: T


@dataclass(frozen=True)
class Deferred:
    """An association that still has to be resolved by calling ``thunk``."""

    thunk: Callable[[], Any]


Association = Union[Resolved, Deferred]


def _restore_target(target: Any) -> Any:
    return target


def _unwrapped(value: Any) -> Any:
    if isinstance(value, LazyLoadingProxy):
        return value.unwrap()
    return value


def _forward(op: Callable[..., Any]) -> Callable[..., Any]:
    def method(self, *args):
        return op(self.unwrap(), *(_unwrapped(arg) for arg in args))

    return method


def _reflect(op: Callable[[Any, Any], Any]) -> Callable[..., Any]:
    def method(self, other):
        return op(_unwrapped(other), self.unwrap())

    return method


def _in_place(op: Callable[[Any, Any], Any]) -> Callable[..., Any]:
    def method(self, other):
        self._set_association(Resolved(op(self.unwrap(), _unwrapped(other))))
        return self

    return method


class LazyLoadingProxy:
    """
    Placeholder for a reference value that resolves on first use.

    Attribute access and assignment, calls, iteration, ``len``, item access,
    membership, truthiness, ordering and arithmetic are forwarded to the
    resolved target. In-place operators rebind the proxy to the result. ``is_resolved``,
    ``source``, ``repr``, ``==`` and ``hash`` never trigger resolution.
    Pickling and copying resolve first and serialize the target itself.
    """

    __slots__ = ("_association", "_descriptor", "_source")

    def __init__(self, descriptor: PropertyDescriptor, source: Any, thunk: Callable[[], Any]):
        object.__setattr__(self, "_descriptor", descriptor)
        object.__setattr__(self, "_source", source)
        self._set_association(Deferred(thunk))

    def _set_association(self, association: Association) -> None:
        object.__setattr__(self, "_association", association)

    @property
    def is_resolved(self) -> bool:
        return isinstance(self._association, Resolved)

    @property
    def source(self) -> Any:
        """The raw reference value this proxy resolves."""
        return self._source

    @property
    def descriptor(self) -> PropertyDescriptor:
        return self._descriptor

    def unwrap(self) -> Any:
        """Resolve if necessary and return the target."""
        association = self._association
        if isinstance(association, Resolved):
            return association.value
        log.debug(f"Resolving lazy reference '{self._descriptor.name}' for source {self._source!r}")
        value = association.thunk()
        self._set_association(Resolved(value))
        return value

    get_target = unwrap

    # --- Forwarding ---

    def __getattr__(self, name: str) -> Any:
        # Only called for names not found on the proxy itself.
        return getattr(self.unwrap(), name)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self.unwrap(), name, value)

    def __delattr__(self, name: str) -> None:
        delattr(self.unwrap(), name)

    def __call__(self, *args, **kwargs):
        return self.unwrap()(*args, **kwargs)

    def __iter__(self):
        return iter(self.unwrap())

    def __len__(self) -> int:
        return len(self.unwrap())

    def __getitem__(self, key):
        return self.unwrap()[key]

    def __setitem__(self, key, value) -> None:
        self.unwrap()[key] = value

    def __delitem__(self, key) -> None:
        del self.unwrap()[key]

    def __reversed__(self):
        return reversed(self.unwrap())

    def __contains__(self, item) -> bool:
        return item in self.unwrap()

    def __bool__(self) -> bool:
        return bool(self.unwrap())

    def __str__(self) -> str:
        return str(self.unwrap())

    def __int__(self) -> int:
        return int(self.unwrap())

    def __float__(self) -> float:
        return float(self.unwrap())

    def __index__(self) -> int:
        return operator.index(self.unwrap())

    # --- Ordering and arithmetic ---

    __lt__ = _forward(operator.lt)
    __le__ = _forward(operator.le)
    __gt__ = _forward(operator.gt)
    __ge__ = _forward(operator.ge)

    __add__ = _forward(operator.add)
    __sub__ = _forward(operator.sub)
    __mul__ = _forward(operator.mul)
    __truediv__ = _forward(operator.truediv)
    __floordiv__ = _forward(operator.floordiv)
    __mod__ = _forward(operator.mod)
    __pow__ = _forward(operator.pow)
    __and__ = _forward(operator.and_)
    __or__ = _forward(operator.or_)
    __xor__ = _forward(operator.xor)

    __radd__ = _reflect(operator.add)
    __rsub__ = _reflect(operator.sub)
    __rmul__ = _reflect(operator.mul)
    __rtruediv__ = _reflect(operator.truediv)
    __rfloordiv__ = _reflect(operator.floordiv)
    __rmod__ = _reflect(operator.mod)
    __rpow__ = _reflect(operator.pow)
    __rand__ = _reflect(operator.and_)
    __ror__ = _reflect(operator.or_)
    __rxor__ = _reflect(operator.xor)

    __iadd__ = _in_place(operator.iadd)
    __isub__ = _in_place(operator.isub)
    __imul__ = _in_place(operator.imul)
    __ior__ = _in_place(operator.ior)

    __neg__ = _forward(operator.neg)
    __pos__ = _forward(operator.pos)
    __abs__ = _forward(operator.abs)
    __invert__ = _forward(operator.invert)

    # --- Identity, never resolving ---

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, LazyLoadingProxy):
            return (
                self._descriptor.name == other._descriptor.name
                and self._source == other._source
            )
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._descriptor.name)

    def __repr__(self) -> str:
        association = self._association
        if isinstance(association, Resolved):
            return f"LazyLoadingProxy({self._descriptor.name!r}, resolved={association.value!r})"
        return f"LazyLoadingProxy({self._descriptor.name!r}, source={self._source!r}, unresolved)"

    # --- Serialization ---

    def __reduce__(self):
        return (_restore_target, (self.unwrap(),))


class LazyLoadingProxyFactory:
    """Creates proxies that resolve through a reference reader."""

    def __init__(self, reader):
        self._reader = reader

    def create_lazy_loading_proxy(
        self,
        descriptor: PropertyDescriptor,
        source: Any,
        lookup: LookupFunction,
        converter: DocumentConverter,
    ) -> LazyLoadingProxy:
        def resolve() -> Any:
            return self._reader.read_reference(descriptor, source, lookup, converter)

        return LazyLoadingProxy(descriptor, source, resolve)
