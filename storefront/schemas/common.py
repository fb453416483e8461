"""
Shared schema base

Records are persisted and returned with camelCase keys (productId, addedAt,
isDefault). Python code uses the snake_case field names.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
