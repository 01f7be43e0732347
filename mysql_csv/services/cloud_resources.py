"""
数据源客户端注册表
平台按数据源类型查找能执行查询的客户端
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type

from ..errors import ConfigurationError


class CloudResourceClient(ABC):
    """数据源客户端基类"""

    @classmethod
    @abstractmethod
    def accept(cls, resource_type: str) -> bool:
        """是否处理该类型的数据源"""
        pass

    @abstractmethod
    def realize_query(self, query: str, params: Optional[Any] = None) -> str:
        """
        执行查询并把结果写入CSV文件

        Returns:
            CSV文件路径
        """
        pass


class CloudResourceClientFactory:
    """数据源客户端工厂类"""

    # 注册的客户端映射
    _clients: Dict[str, Type[CloudResourceClient]] = {}

    @classmethod
    def register_client(cls, resource_type: str, client_class: Type[CloudResourceClient]):
        """
        注册新的数据源客户端

        Args:
            resource_type: 数据源类型名称
            client_class: 客户端类
        """
        cls._clients[resource_type.lower()] = client_class

    @classmethod
    def get_client_class(cls, resource_type: str) -> Type[CloudResourceClient]:
        """
        查找能处理该数据源类型的客户端类

        Raises:
            ConfigurationError: 如果数据源类型不支持
        """
        for client_class in cls._clients.values():
            if client_class.accept(resource_type):
                return client_class

        raise ConfigurationError(
            f"不支持的数据源类型: {resource_type}。"
            f"支持的类型: {', '.join(cls._clients.keys())}"
        )

    @classmethod
    def get_client(cls, resource_type: str, options: Dict[str, Any], **kwargs) -> CloudResourceClient:
        """
        创建数据源客户端实例

        Args:
            resource_type: 数据源类型，如 'mysql'
            options: 客户端配置
            **kwargs: 传给客户端构造函数的其他参数

        Returns:
            客户端实例
        """
        return cls.get_client_class(resource_type)(options, **kwargs)

    @classmethod
    def get_supported_types(cls) -> List[str]:
        """获取所有支持的数据源类型"""
        return list(cls._clients.keys())

    @classmethod
    def is_supported(cls, resource_type: str) -> bool:
        """检查是否支持指定的数据源类型"""
        return any(client_class.accept(resource_type) for client_class in cls._clients.values())
