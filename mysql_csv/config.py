"""
配置模块
从环境变量（以及 .env 文件）读取运行配置
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# 加载环境变量
load_dotenv()

# 结果集每次从服务端游标拉取的行数
MYSQL_FETCH_SIZE = 1000


def get_output_dir() -> Path:
    """
    获取查询结果CSV文件的输出目录

    Returns:
        输出目录路径（不存在时自动创建）
    """
    output_dir = Path(os.getenv("MYSQL_CSV_OUTPUT_DIR", "."))
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def get_log_level() -> str:
    """获取日志级别"""
    return os.getenv("LOG_LEVEL", "INFO")


def get_log_file() -> str:
    """获取日志文件路径，空字符串表示不写文件"""
    return os.getenv("LOG_FILE", "./logs/mysql_csv.log")
