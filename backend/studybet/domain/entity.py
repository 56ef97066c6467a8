"""Identity-by-id equality shared by all domain entities."""

import uuid


class Entity:
    """Two entities are equal iff they are the same concrete kind with the same id.

    Subclasses are dataclasses declared with ``eq=False`` and an ``id`` field.
    """

    id: uuid.UUID

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return type(self) is type(other) and self.id == other.id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.id))
