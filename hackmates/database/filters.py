from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple

from pymongo import ASCENDING, DESCENDING


# Each filter compiles to a Mongo query and can also test a single record in
# memory, which is how live subscriptions decide whether an insert concerns them.


@dataclass(frozen=True)
class Eq:

    field: str
    value: Any

    def to_mongo(self) -> Dict[str, Any]:
        return {self.field: self.value}

    def matches(self, record: Mapping[str, Any]) -> bool:
        return record.get(self.field) == self.value


@dataclass(frozen=True)
class ArrayContains:

    field: str
    value: Any

    def to_mongo(self) -> Dict[str, Any]:
        # equality against an array field matches any element
        return {self.field: self.value}

    def matches(self, record: Mapping[str, Any]) -> bool:
        values = record.get(self.field)
        return isinstance(values, (list, tuple)) and self.value in values


class AllOf:

    def __init__(self, *clauses) -> None:
        self.clauses = clauses

    def to_mongo(self) -> Dict[str, Any]:
        return {"$and": [c.to_mongo() for c in self.clauses]}

    def matches(self, record: Mapping[str, Any]) -> bool:
        return all(c.matches(record) for c in self.clauses)


class AnyOf:

    def __init__(self, *clauses) -> None:
        self.clauses = clauses

    def to_mongo(self) -> Dict[str, Any]:
        return {"$or": [c.to_mongo() for c in self.clauses]}

    def matches(self, record: Mapping[str, Any]) -> bool:
        return any(c.matches(record) for c in self.clauses)


OrderBy = List[Tuple[str, int]]


def ascending(field: str) -> OrderBy:
    # _id breaks ties between records written in the same millisecond
    return [(field, ASCENDING), ("_id", ASCENDING)]


def descending(field: str) -> OrderBy:
    return [(field, DESCENDING), ("_id", DESCENDING)]
