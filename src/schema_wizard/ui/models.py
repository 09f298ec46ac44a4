"""Pydantic models for the screen/section/field document.

A section is a tagged variant discriminated on ``kind``:

- ``SimpleSection``: a flat list of fields, optionally followed by a
  nested ``RepeatSection`` whose rows reference the record just saved.
- ``RepeatSection``: repeated rows written to another table; its own
  ``sections`` describe the row form and may nest further repeats.

Documents that omit ``kind`` are read as simple sections.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


FieldType = Literal["text", "textarea", "number", "date", "email", "select"]


class FieldOption(_CamelModel):
    value: str
    label: str


class FieldSpec(_CamelModel):
    """One input widget bound to a column."""

    name: str
    label: str = ""
    type: FieldType = "text"
    required: bool = False
    options: list[FieldOption] | None = None  # select fields only

    @property
    def display_label(self) -> str:
        return self.label or self.name


class SimpleSection(_CamelModel):
    """Flat field list; ``nested`` holds child rows saved after this record."""

    kind: Literal["simple"] = "simple"
    title: str = ""
    fields: list[FieldSpec] = Field(default_factory=list)
    is_business_key_section: bool = False
    nested: "RepeatSection | None" = None


class RepeatSection(_CamelModel):
    """Repeated rows written to ``table`` on behalf of the owning step."""

    kind: Literal["repeat"] = "repeat"
    title: str = ""
    table: str
    sections: list["SectionSpec"] = Field(default_factory=list)
    min_rows: int = 1

    @property
    def row_fields(self) -> list[FieldSpec]:
        """Fields of the row form: every simple inner section, in order."""
        fields: list[FieldSpec] = []
        for section in self.sections:
            if isinstance(section, SimpleSection):
                fields.extend(section.fields)
        return fields


def _section_kind(value: Any) -> str:
    if isinstance(value, dict):
        return value.get("kind", "simple")
    return getattr(value, "kind", "simple")


SectionSpec = Annotated[
    Union[
        Annotated[SimpleSection, Tag("simple")],
        Annotated[RepeatSection, Tag("repeat")],
    ],
    Discriminator(_section_kind),
]

SimpleSection.model_rebuild()
RepeatSection.model_rebuild()


class ScreenSpec(_CamelModel):
    """One form screen per logical table."""

    table: str
    title: str = ""
    display_field: str | None = None
    sections: list[SectionSpec] = Field(default_factory=list)

    @property
    def display_title(self) -> str:
        return self.title or self.table

    def record_label(self, record: dict, id_column: str = "id") -> str:
        """Human label for a record: its display field, else ``<title> #<id>``."""
        if self.display_field and record.get(self.display_field):
            return str(record[self.display_field])
        return f"{self.display_title} #{record.get(id_column)}"


class UiConfig(_CamelModel):
    """Complete UI document."""

    screens: list[ScreenSpec] = Field(default_factory=list)

    def screen_for(self, table: str) -> tuple[int, ScreenSpec] | None:
        """Index and screen for ``table`` (first match), or None."""
        for index, screen in enumerate(self.screens):
            if screen.table == table:
                return index, screen
        return None

