"""
日志配置模块
统一的日志记录器，以及带上下文的错误日志辅助函数
"""
import logging
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any

from ..config import get_log_level, get_log_file

DEFAULT_LOGGER_NAME = "mysql_csv"


class DetailedFormatter(logging.Formatter):
    """在基础格式之后追加上下文信息的格式化器"""

    def format(self, record: logging.LogRecord) -> str:
        # 基础格式化（已包含异常堆栈）
        formatted = super().format(record)

        if getattr(record, 'extra_context', None):
            formatted += f"\n上下文信息: {record.extra_context}"

        return formatted


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    设置日志记录器

    Args:
        name: 日志记录器名称
        log_level: 日志级别（DEBUG, INFO, WARNING, ERROR, CRITICAL）
        log_file: 日志文件路径，None 时从环境变量读取，空字符串表示不写文件
        console_output: 是否输出到控制台

    Returns:
        配置好的日志记录器
    """
    if log_level is None:
        log_level = get_log_level()

    if log_file is None:
        log_file = get_log_file()

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper()))

    # 清除已有的处理器（避免重复添加）
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_format = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    if log_file:
        log_dir = Path(log_file).parent
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(DetailedFormatter(log_format, date_format))
        logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, log_level.upper()))
        console_handler.setFormatter(DetailedFormatter(log_format, date_format))
        logger.addHandler(console_handler)

    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    获取日志记录器

    模块内的记录器（如 mysql_csv.services.mysql_client）挂在根记录器
    mysql_csv 之下，只需要初始化一次根记录器。
    """
    root = logging.getLogger(DEFAULT_LOGGER_NAME)
    if not root.handlers:
        setup_logger(DEFAULT_LOGGER_NAME)

    return logging.getLogger(name)


def log_error_with_context(
    logger: logging.Logger,
    message: str,
    error: Exception,
    context: Optional[Dict[str, Any]] = None
):
    """
    记录带有详细上下文的错误日志

    Args:
        logger: 日志记录器
        message: 错误消息
        error: 异常对象
        context: 额外的上下文信息（如SQL语句、连接配置）
    """
    error_details = {
        "message": message,
        "error_type": type(error).__name__,
        "error_message": str(error),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if context:
        error_details["context"] = context

    error_details["traceback"] = traceback.format_exc()

    logger.error(
        f"{message}\n详细信息: {error_details}",
        exc_info=True,
        extra={"extra_context": context}
    )


def log_sql_error(
    logger: logging.Logger,
    sql: str,
    url: str,
    error: Exception,
    parameters: Optional[Any] = None
):
    """
    记录SQL执行错误

    Args:
        logger: 日志记录器
        sql: SQL语句
        url: 连接URL（不含密码）
        error: 异常对象
        parameters: SQL参数
    """
    context = {
        "sql": sql,
        "url": url,
        "parameters": parameters,
    }
    log_error_with_context(logger, "SQL执行失败", error, context)


def log_database_connection_error(
    logger: logging.Logger,
    db_config: Dict[str, Any],
    error: Exception
):
    """
    记录数据库连接错误

    Args:
        logger: 日志记录器
        db_config: 连接配置（密码会被脱敏）
        error: 异常对象
    """
    context = {
        "db_config": mask_secrets(db_config),
    }
    log_error_with_context(logger, "数据库连接失败", error, context)


def mask_secrets(config: Dict[str, Any]) -> Dict[str, Any]:
    """递归复制配置字典，把 password 字段替换为 ***"""
    safe_config = {}
    for key, value in config.items():
        if key == "password":
            safe_config[key] = "***"
        elif isinstance(value, dict):
            safe_config[key] = mask_secrets(value)
        else:
            safe_config[key] = value
    return safe_config
