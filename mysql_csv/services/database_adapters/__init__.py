"""
数据库适配器模块
根据连接描述构建驱动连接串和连接参数
"""
from .base import DatabaseAdapter
from .mysql import MySQLAdapter

__all__ = [
    'DatabaseAdapter',
    'MySQLAdapter',
]
