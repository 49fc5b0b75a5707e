# Copyright 2025 Hathor Labs
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations

import copy
import inspect
from typing import TYPE_CHECKING, Any, get_origin

if TYPE_CHECKING:
    from liquidity_lock.nanocontracts.runner import Syscall

_CONTAINER_FACTORIES: dict[Any, type] = {dict: dict, list: list, set: set}


def _container_factory(annotation: Any) -> type | None:
    if isinstance(annotation, str):
        # Postponed annotations, e.g. "dict[Address, Amount]".
        name = annotation.split("[", 1)[0].strip()
        return {"dict": dict, "list": list, "set": set}.get(name)
    return _CONTAINER_FACTORIES.get(get_origin(annotation) or annotation)


class Blueprint:
    """Base class of every contract.

    State is declared with class-level annotations:

        class Example(Blueprint):
            owner: Address
            balances: dict[Address, Amount]

    Only annotated attributes are contract state: they are snapshotted and
    restored by the runner. Container fields start empty.
    """

    syscall: Syscall

    def __init__(self, syscall: Syscall) -> None:
        # `syscall` is not a declared field, it is wired by the runner.
        self.syscall = syscall
        for name, annotation in self.get_fields().items():
            factory = _container_factory(annotation)
            if factory is not None:
                setattr(self, name, factory())

    @classmethod
    def get_fields(cls) -> dict[str, Any]:
        """Return the state fields declared along the class hierarchy."""
        fields: dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            if klass is object or klass is Blueprint:
                continue
            fields.update(inspect.get_annotations(klass, eval_str=False))
        return fields

    def get_state(self) -> dict[str, Any]:
        """Deep copy of every field that has been set."""
        return {
            name: copy.deepcopy(self.__dict__[name])
            for name in self.get_fields()
            if name in self.__dict__
        }

    def set_state(self, state: dict[str, Any]) -> None:
        for name in self.get_fields():
            self.__dict__.pop(name, None)
        self.__dict__.update(state)
