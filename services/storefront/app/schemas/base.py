"""
Storefront — shared schema base

The sheets and the browser speak camelCase; Python code uses snake_case.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_row(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Notice(CamelModel):
    level: str
    message: str
    entity_id: str | None = None
