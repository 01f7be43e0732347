"""
MySQL / MongoDB BI 查询结果导出为CSV的数据源适配器
"""
from .errors import (
    MysqlCsvError,
    ConfigurationError,
    DatabaseConnectionError,
    QueryError,
)
from .services.dto import ConnectionDescriptor, ResolvedConnection
from .services.database_adapters import MySQLAdapter
from .services.cloud_resources import CloudResourceClient, CloudResourceClientFactory
from .services.mysql_client import MysqlClient, execute_query
from .utils.csv_helpers import csv_read, csv_write

__all__ = [
    'MysqlCsvError',
    'ConfigurationError',
    'DatabaseConnectionError',
    'QueryError',
    'ConnectionDescriptor',
    'ResolvedConnection',
    'MySQLAdapter',
    'CloudResourceClient',
    'CloudResourceClientFactory',
    'MysqlClient',
    'execute_query',
    'csv_read',
    'csv_write',
]
