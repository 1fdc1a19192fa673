"""Shared pydantic base: camelCase on the wire, snake_case in Python"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Upper bound of the INTEGER primary key columns
MAX_ID = 2**31 - 1


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
