from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """와이어 포맷은 camelCase, 파이썬 속성은 snake_case"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
