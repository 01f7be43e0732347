"""
服务层包
"""
from .dto import ConnectionDescriptor, ResolvedConnection
from .cloud_resources import CloudResourceClient, CloudResourceClientFactory
from .mysql_client import MysqlClient, execute_query
