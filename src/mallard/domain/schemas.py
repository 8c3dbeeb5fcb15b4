from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ColumnInfo(BaseModel):
    """A column discovered in a data file."""

    model_config = ConfigDict(frozen=True)

    name : str = Field(..., description="Column name")
    declared_type : str = Field(default="", description="Type reported by the engine (e.g. BIGINT, VARCHAR)")
    nullable : bool = Field(default=True, description="Whether the column can contain null values")


class TableSchema(BaseModel):
    """Represents a table backed by one data file."""

    model_config = ConfigDict(frozen=True)

    table_name : str = Field(..., description="Name of the table, derived from the file name")
    source_identifier : str = Field(..., description="Path of the originating data file")
    columns : List[ColumnInfo] = Field(default_factory=list, description="Columns in file order")

    def render_columns(self) -> str:
        """Render the columns as 'name type, name type, ...'."""
        return ", ".join(f"{column.name} {column.declared_type}".strip() for column in self.columns)
