"""
数据传输对象 (Data Transfer Objects)
连接描述与解析后的连接信息
"""
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ConfigurationError

SslMode = Literal["prefer", "require", "verify-full"]


class BasicAuthentication(BaseModel):
    """用户名/密码认证"""
    model_config = ConfigDict(populate_by_name=True)

    user_name: str = Field(alias="userName")
    password: str


class Authentication(BaseModel):
    """认证信息"""
    basic: BasicAuthentication


class ConnectionDescriptor(BaseModel):
    """
    数据源连接描述

    字段名沿用平台配置里的驼峰写法（url, databaseType, database, sslMode,
    authentication.basic.userName/password），Python 侧以下划线命名访问。
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    url: str
    database_type: Optional[str] = Field(default=None, alias="databaseType")
    database: str
    ssl_mode: SslMode = Field(alias="sslMode")
    authentication: Authentication

    @classmethod
    def parse(cls, data: Dict[str, Any]) -> "ConnectionDescriptor":
        """
        从配置字典构建连接描述

        Raises:
            ConfigurationError: 字段缺失、sslMode 非法等
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            ssl_mode = data.get("sslMode", data.get("ssl_mode")) if isinstance(data, dict) else None
            if any(err["loc"][:1] in (("sslMode",), ("ssl_mode",)) for err in e.errors()):
                raise ConfigurationError(
                    f"SSL Mode should be prefer, require and verify-full, got: {ssl_mode!r}"
                ) from e
            raise ConfigurationError(f"连接配置无效: {e}") from e

    def safe_dict(self) -> Dict[str, Any]:
        """用于日志的配置字典（密码脱敏）"""
        data = self.model_dump(by_alias=True)
        data["authentication"]["basic"]["password"] = "***"
        return data


class ResolvedConnection(BaseModel):
    """从连接描述解析出的连接信息，构建后不可修改"""
    model_config = ConfigDict(frozen=True)

    host: str
    port: int = 3306
    full_url: str
