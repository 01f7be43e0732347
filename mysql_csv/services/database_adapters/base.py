"""
数据库适配器基类
定义连接字符串构建器必须实现的接口
"""
from abc import ABC, abstractmethod
from typing import Dict, Any

from sqlalchemy.engine import URL

from ..dto import ConnectionDescriptor, ResolvedConnection


class DatabaseAdapter(ABC):
    """数据库适配器基类"""

    @abstractmethod
    def resolve(self, descriptor: ConnectionDescriptor) -> ResolvedConnection:
        """
        解析连接描述，得到主机、端口和完整连接URL

        Args:
            descriptor: 连接描述

        Returns:
            ResolvedConnection 对象

        Raises:
            ConfigurationError: 如果连接描述无法解析
        """
        pass

    @abstractmethod
    def get_sqlalchemy_url(self, descriptor: ConnectionDescriptor) -> URL:
        """
        构建SQLAlchemy连接URL（包含认证信息）

        Args:
            descriptor: 连接描述

        Returns:
            sqlalchemy.engine.URL 对象
        """
        pass

    @abstractmethod
    def get_connect_args(self, descriptor: ConnectionDescriptor) -> Dict[str, Any]:
        """
        获取传给DBAPI驱动的连接参数（SSL、事务模式等）

        Args:
            descriptor: 连接描述

        Returns:
            连接参数字典
        """
        pass

    @abstractmethod
    def get_driver_name(self) -> str:
        """
        获取SQLAlchemy驱动名称

        Returns:
            驱动名称，如 'mysql+pymysql'
        """
        pass

    def build_url(self, descriptor: ConnectionDescriptor) -> str:
        """构建完整的连接URL字符串"""
        return self.resolve(descriptor).full_url

