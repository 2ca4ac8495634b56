"""
Field domain resolver: turns a list field into the ordered set of board states.

Enumerated (choice) fields produce one state per allowed value. Reference
(lookup) fields produce one state per row of the referenced list, named
"<id>;#<display value>" so it matches the raw value stored on records.
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from .errors import FieldNotFound, UnsupportedFieldType
from .schema import (
    BLANK_STATE,
    FieldDescriptor,
    FieldMetadataSource,
    QueryDescriptor,
    RecordSource,
    State,
    StateType,
    record_id,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_COLUMNS = 20


@dataclass
class ResolveOptions:
    """Caller-side knobs for building the columns."""
    collection: str = ""
    field_filter: Optional[Union[str, List[str], Any]] = None
    allow_blanks: Optional[bool] = None
    optional_label: str = "(none)"
    max_columns: int = DEFAULT_MAX_COLUMNS
    id_field: str = "id"


def _choice_filter(field_filter: Any) -> Optional[List[str]]:
    """Comma-separated string or list of allowed choice values."""
    if not field_filter:
        return None
    if isinstance(field_filter, str):
        return field_filter.split(",")
    return [str(v) for v in field_filter]


class FieldDomainResolver:
    """Builds board states from field metadata."""

    def __init__(self, metadata: FieldMetadataSource, records: RecordSource):
        self.metadata = metadata
        self.records = records

    async def resolve_field(self, field_id: str, options: ResolveOptions) -> List[State]:
        """Look the field up by name, then resolve its domain."""
        descriptor = await self.metadata.describe_field(options.collection, field_id)
        if descriptor is None:
            raise FieldNotFound(f"Field ({field_id}) not found in list definition!")
        return await self.resolve(descriptor, options)

    async def resolve(self, descriptor: FieldDescriptor, options: ResolveOptions) -> List[State]:
        state_type = StateType.from_field_type(descriptor.type)
        if state_type is None:
            raise UnsupportedFieldType(
                f"Field ({descriptor.name}) Type ({descriptor.type}) is not supported!"
            )

        if state_type == StateType.ENUMERATED:
            states = self._enumerated_states(descriptor, options)
        else:
            states = await self._reference_states(descriptor, options)

        if not self._is_required(descriptor, options):
            states.insert(0, State(name=BLANK_STATE, title=options.optional_label, type=state_type))

        unique, seen = [], set()
        for state in states:
            if state.name in seen:
                logger.warning(f"Field {descriptor.name}: duplicate value '{state.name}' skipped")
                continue
            seen.add(state.name)
            unique.append(state)

        logger.debug(f"Resolved {len(unique)} states for field {descriptor.name}")
        return unique

    def _is_required(self, descriptor: FieldDescriptor, options: ResolveOptions) -> bool:
        if isinstance(options.allow_blanks, bool):
            return not options.allow_blanks
        return descriptor.required

    def _enumerated_states(self, descriptor: FieldDescriptor, options: ResolveOptions) -> List[State]:
        allowed = _choice_filter(options.field_filter)
        values = [v for v in descriptor.domain_values if allowed is None or v in allowed]
        values = self._truncate(values, options.max_columns, descriptor.name)
        return [State(name=v, title=v, type=StateType.ENUMERATED) for v in values]

    async def _reference_states(self, descriptor: FieldDescriptor, options: ResolveOptions) -> List[State]:
        display_field = descriptor.reference_display_field or "Title"
        query = QueryDescriptor(
            collection=descriptor.reference_collection or "",
            filter=options.field_filter,
            fields=[options.id_field, display_field],
            limit=options.max_columns + 1,
        )
        rows, _raw = await self.records.fetch(query)
        rows = self._truncate(list(rows), options.max_columns, descriptor.name)

        states = []
        for row in rows:
            title = row.get(display_field)
            title = "" if title is None else str(title)
            states.append(State(
                name=f"{record_id(row, options.id_field)};#{title}",
                title=title,
                type=StateType.REFERENCE,
            ))
        return states

    def _truncate(self, values: list, max_columns: int, field_name: str) -> list:
        if len(values) > max_columns:
            logger.warning(
                f"Field {field_name} has {len(values)} values; "
                f"can only build a max of {max_columns} columns"
            )
            return values[:max_columns]
        return values
