"""Base schema class for interchange and API models."""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict


class SchemaBase(BaseModel):
    """Base class for all Pydantic schemas.

    Unknown fields are ignored so provider payloads can be validated
    directly, and dumps are JSON-mode so datetimes serialize as ISO strings.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        extra="ignore",
    )

    @classmethod
    def from_payload(cls, data: Any) -> Self:
        """
        Factory method to create a schema instance from an API payload.

        Args:
            data: Dict or attribute-bearing object (e.g. a githubkit model)

        Returns:
            Pydantic schema instance
        """
        return cls.model_validate(data)

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict."""
        return self.model_dump(mode="json")
