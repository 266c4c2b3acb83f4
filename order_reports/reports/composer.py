"""
Query Composition

Builds parameterized WHERE clauses from validated filters. Predicates are
collected as an ordered list of (template, value, type) entries and the bind
placeholders are numbered strictly by list position when the clause is
rendered, so omitting one filter never shifts the placeholder of another.
Values always travel as bound parameters; the query text only ever holds
predicate templates defined in code.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from sqlalchemy import bindparam
from sqlalchemy.sql.elements import BindParameter
from sqlalchemy.types import TypeEngine


def placeholder(position: int) -> str:
    """Bind marker for the 1-based ``position`` in the parameter list."""
    return f":p{position}"


@dataclass(frozen=True)
class BoundValue:
    value: Any
    type_: Optional[TypeEngine] = None


@dataclass(frozen=True)
class ComposedClause:
    """
    A rendered predicate clause plus its ordered parameter list.

    ``predicates`` already carry their placeholders; ``params[i]`` binds to
    placeholder ``i + 1``.
    """

    predicates: Tuple[str, ...] = ()
    params: Tuple[BoundValue, ...] = ()

    @property
    def where(self) -> str:
        if not self.predicates:
            return ""
        return "WHERE " + " AND ".join(self.predicates)

    def extend(self, *values: BoundValue) -> Tuple["ComposedClause", List[str]]:
        """
        Append trailing values (e.g. limit and offset) after the predicates.

        Returns the new clause and the placeholders assigned to ``values``.
        """
        start = len(self.params)
        markers = [placeholder(start + i + 1) for i in range(len(values))]
        return ComposedClause(self.predicates, self.params + tuple(values)), markers

    def bindparams(self) -> List[BindParameter]:
        return [
            bindparam(f"p{i}", bound.value, type_=bound.type_)
            for i, bound in enumerate(self.params, start=1)
        ]


@dataclass
class QueryComposer:
    """
    Accumulates optional predicates in a fixed, caller-defined order.

    Example:
        clause = (
            QueryComposer()
            .where("sale_date >= {}", filters.start_date, Date())
            .where("sale_date <= {}", filters.end_date, Date())
            .compose()
        )
        clause.where   # "WHERE sale_date >= :p1 AND sale_date <= :p2"
    """

    _entries: List[Tuple[str, BoundValue]] = field(default_factory=list)

    def where(self, template: str, value: Any, type_: Optional[TypeEngine] = None) -> "QueryComposer":
        """Add ``template`` (with one ``{}`` slot) unless ``value`` is absent."""
        if value is not None:
            self._entries.append((template, BoundValue(value, type_)))
        return self

    def compose(self) -> ComposedClause:
        predicates = []
        params = []
        for template, bound in self._entries:
            params.append(bound)
            predicates.append(template.format(placeholder(len(params))))
        return ComposedClause(tuple(predicates), tuple(params))
