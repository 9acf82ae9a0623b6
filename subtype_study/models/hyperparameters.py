"""
Hyperparameter configurations and grids.
"""

import itertools
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Configuration:
    """One point of a hyperparameter grid, as ordered ``(name, value)`` pairs."""

    params: Tuple[Tuple[str, Any], ...] = ()

    @classmethod
    def of(cls, mapping: Optional[Mapping[str, Any]] = None, **kwargs) -> 'Configuration':
        items = dict(mapping or {})
        items.update(kwargs)
        return cls(tuple(items.items()))

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.params)

    def names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.params)

    def __str__(self) -> str:
        return ', '.join(f"{name}={value}" for name, value in self.params) or '<default>'


class HyperparameterGrid:
    """
    Cartesian product of named parameter value lists.

    Configurations are enumerated in declaration order with the first
    parameter varying slowest. A grid without parameters, or with an empty
    value list, has no configurations.

    Args:
        parameters: Mapping of parameter name to candidate values.

    Example:
        >>> grid = HyperparameterGrid({'C': [0.1, 1, 10], 'gamma': [0.01, 0.1]})
        >>> len(grid)
        6
        >>> str(grid.configurations()[0])
        'C=0.1, gamma=0.01'
    """

    def __init__(self, parameters: Mapping[str, Sequence[Any]]):
        self.parameters: 'OrderedDict[str, Tuple[Any, ...]]' = OrderedDict(
            (str(name), tuple(values)) for name, values in parameters.items()
        )

    @classmethod
    def single(cls, configuration: Configuration) -> 'HyperparameterGrid':
        return cls({name: [value] for name, value in configuration.params})

    def configurations(self) -> List[Configuration]:
        if not self.parameters or any(len(v) == 0 for v in self.parameters.values()):
            return []
        names = list(self.parameters)
        return [
            Configuration(tuple(zip(names, values)))
            for values in itertools.product(*self.parameters.values())
        ]

    def __iter__(self) -> Iterator[Configuration]:
        return iter(self.configurations())

    def __len__(self) -> int:
        if not self.parameters:
            return 0
        size = 1
        for values in self.parameters.values():
            size *= len(values)
        return size

    def __repr__(self) -> str:
        return f"HyperparameterGrid({dict(self.parameters)!r})"
