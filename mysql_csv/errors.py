"""
异常定义
配置错误、连接错误、查询错误
"""


class MysqlCsvError(Exception):
    """所有适配器异常的基类"""


class ConfigurationError(MysqlCsvError, ValueError):
    """连接配置缺失或格式错误（在建立连接之前检测）"""


class DatabaseConnectionError(MysqlCsvError):
    """驱动无法建立数据库连接（认证失败、网络不可达、TLS握手失败）"""


class QueryError(MysqlCsvError):
    """SQL执行失败或读取结果集中途失败"""
