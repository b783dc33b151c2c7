from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Request body accepting both camelCase and snake_case keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class Row(BaseModel):
    """A database row in a response; undeclared columns pass through unchanged"""
    model_config = ConfigDict(extra="allow")
