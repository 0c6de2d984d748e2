import os
from graphlib import CycleError, TopologicalSorter
from typing import Any, Callable, Iterable, Optional

from attrs import define, field
from attrs.validators import ge, instance_of
from aws_lambda_powertools.logging.logger import Logger

import common.constants as constants

logger: Logger = Logger(
    service=constants.SERVICE_NAME,
    level=os.getenv("LOG_LEVEL", constants.LOG_LEVEL).upper(),
)


class ResourceGraphError(ValueError):
    pass


class CyclicDependencyError(ResourceGraphError):
    pass


class UnresolvedReferenceError(ResourceGraphError):
    pass


class DuplicateDeclarationError(ResourceGraphError):
    pass


@define(slots=True, frozen=True)
class Declaration:
    name: str = field(validator=instance_of(str))
    factory: Callable[["ResolvedResources", int], Any]
    depends_on: tuple[str, ...] = field(factory=tuple, converter=tuple)
    count: int = field(default=1, validator=[instance_of(int), ge(0)])


class ResolvedResources:
    """Instances built so far, keyed by declaration name.

    A declaration with a count of zero resolves to an empty list, so dependents
    can check for presence instead of assuming the resource exists.
    """

    def __init__(self, apply_order: Iterable[str] = ()) -> None:
        self.apply_order: list[str] = list(apply_order)
        self._instances: dict[str, list[Any]] = {}

    def instances(self, name: str) -> list[Any]:
        if name not in self._instances:
            raise UnresolvedReferenceError(f"'{name}' has not been built yet")
        return list(self._instances[name])

    def first(self, name: str) -> Optional[Any]:
        instances = self.instances(name)
        return instances[0] if instances else None

    def one(self, name: str) -> Any:
        instances = self.instances(name)
        if len(instances) != 1:
            raise ResourceGraphError(
                f"'{name}' has {len(instances)} instances, exactly one expected"
            )
        return instances[0]

    def _add(self, name: str, instances: list[Any]) -> None:
        self._instances[name] = instances


class ResourceGraph:
    """Declarations joined by name, built in dependency order.

    Every reference is validated and the apply order computed before the first
    factory runs, so a dangling reference or a cycle never leaves a half-built
    stack behind.
    """

    def __init__(self) -> None:
        self._declarations: dict[str, Declaration] = {}

    def declare(
        self,
        name: str,
        factory: Callable[[ResolvedResources, int], Any],
        depends_on: Iterable[str] = (),
        count: int = 1,
    ) -> Declaration:
        if name in self._declarations:
            raise DuplicateDeclarationError(f"'{name}' is already declared")
        declaration = Declaration(
            name=name, factory=factory, depends_on=tuple(depends_on), count=count
        )
        self._declarations[name] = declaration
        return declaration

    def resolve(self) -> list[str]:
        """Return declaration names ordered so dependencies come first.

        Independent declarations keep their declaration order.
        """
        for declaration in self._declarations.values():
            missing = [
                dep for dep in declaration.depends_on if dep not in self._declarations
            ]
            if missing:
                raise UnresolvedReferenceError(
                    f"'{declaration.name}' references undeclared {', '.join(missing)}"
                )

        position = {name: index for index, name in enumerate(self._declarations)}
        sorter = TopologicalSorter(
            {name: set(d.depends_on) for name, d in self._declarations.items()}
        )
        try:
            sorter.prepare()
        except CycleError as e:
            cycle = " -> ".join(e.args[1]) if len(e.args) > 1 else str(e)
            raise CyclicDependencyError(f"Cyclic dependency: {cycle}") from e

        order: list[str] = []
        while sorter.is_active():
            ready = sorted(sorter.get_ready(), key=position.__getitem__)
            order.extend(ready)
            sorter.done(*ready)
        return order

    def build(self) -> ResolvedResources:
        order = self.resolve()
        logger.info("Resolved apply order", apply_order=order)

        resolved = ResolvedResources(apply_order=order)
        for name in order:
            declaration = self._declarations[name]
            instances = [
                declaration.factory(resolved, index)
                for index in range(declaration.count)
            ]
            if not instances:
                logger.debug("Skipping declaration with zero instances", name=name)
            resolved._add(name, instances)
        return resolved
