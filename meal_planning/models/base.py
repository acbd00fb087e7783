"""
基础数据模型
定义通用的模型基类
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseEntity(BaseModel):
    """基础实体模型

    字段在 Python 侧使用 snake_case，序列化时输出 camelCase，
    与前端约定的字段名保持一致。
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_response(self) -> dict:
        """转换为可直接返回的 JSON 字典"""
        return self.model_dump(mode="json", by_alias=True)
