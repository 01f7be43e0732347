"""
MySQL查询执行器
建立连接、执行一条SQL、把结果集流式写入CSV文件
"""
import secrets
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Generator, Mapping, Optional, Union

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Connection, CursorResult, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from ..config import MYSQL_FETCH_SIZE, get_output_dir
from ..errors import ConfigurationError, DatabaseConnectionError, QueryError
from ..utils.csv_helpers import open_csv_writer
from ..utils.logger import get_logger, log_database_connection_error, log_sql_error
from .cloud_resources import CloudResourceClient, CloudResourceClientFactory
from .database_adapters import MySQLAdapter
from .database_adapters.mysql import ensure_tls
from .dto import ConnectionDescriptor

logger = get_logger(__name__)

EngineFactory = Callable[[URL, Dict[str, Any]], Engine]


def create_mysql_engine(url: URL, connect_args: Dict[str, Any]) -> Engine:
    """
    为单次查询创建不使用连接池的引擎

    每次调用都打开新连接，用完即关闭。传入 ssl 时要求连接必须加密，
    校验在方言初始化查询之前执行。
    """
    engine = create_engine(url, poolclass=NullPool, connect_args=connect_args)
    if connect_args.get("ssl") is not None:
        event.listen(engine, "connect", ensure_tls, insert=True)
    return engine


def render_cell(value: Any) -> str:
    """
    单元格转字符串，NULL 写为空字符串

    二进制列（BLOB、BINARY）按 UTF-8 解码，无法解码的字节替换为 U+FFFD，
    因此非文本内容写入CSV后不能还原为原始字节。
    """
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


class MysqlClient(CloudResourceClient):
    """MySQL数据源客户端"""

    @classmethod
    def accept(cls, resource_type: str) -> bool:
        return resource_type == 'mysql'

    def __init__(
        self,
        options: Mapping[str, Any],
        engine_factory: Optional[EngineFactory] = None,
        output_dir: Optional[Union[str, Path]] = None
    ):
        """
        Args:
            options: 客户端配置，连接描述位于 options['mysql_client']['connection']
            engine_factory: 创建SQLAlchemy引擎的函数，默认连接 mysql+pymysql
            output_dir: 结果文件目录，默认读取 MYSQL_CSV_OUTPUT_DIR

        Raises:
            ConfigurationError: 配置缺失或无效
        """
        client_options = (options or {}).get('mysql_client')
        if not client_options:
            raise ConfigurationError(
                "Data Source needs a client to Mysql to be able to query the storage "
                "but 'mysql_client' is empty."
            )

        connection = client_options.get('connection') if isinstance(client_options, Mapping) else None
        if isinstance(connection, ConnectionDescriptor):
            self.descriptor = connection
        elif isinstance(connection, Mapping):
            self.descriptor = ConnectionDescriptor.parse(dict(connection))
        else:
            raise ConfigurationError('Missing connection info for Mysql client')

        self.adapter = MySQLAdapter()
        self.url = self.adapter.build_url(self.descriptor)
        self.engine_factory = engine_factory or create_mysql_engine
        self.output_dir = Path(output_dir) if output_dir is not None else None

    @contextmanager
    def connect(self) -> Generator[Connection, None, None]:
        """
        打开一个数据库连接

        退出上下文时无论是否发生异常都会关闭连接并释放引擎。

        Raises:
            DatabaseConnectionError: 驱动无法建立连接
        """
        logger.info(f"建立MySQL连接: {self.url}")

        engine = self.engine_factory(
            self.adapter.get_sqlalchemy_url(self.descriptor),
            self.adapter.get_connect_args(self.descriptor)
        )
        try:
            try:
                connection = engine.connect()
            except DatabaseConnectionError as e:
                log_database_connection_error(logger, self.descriptor.safe_dict(), e)
                raise
            except SQLAlchemyError as e:
                log_database_connection_error(logger, self.descriptor.safe_dict(), e)
                raise DatabaseConnectionError(f"无法连接MySQL {self.url}: {e}") from e

            with connection:
                yield connection
        finally:
            engine.dispose()

    def realize_query(self, query: str, params: Optional[Any] = None) -> str:
        """
        执行一条SQL并把结果写入CSV文件

        第一行是列名，之后每行对应结果集的一行。语句不返回结果集时（DDL/DML）
        不写文件，但仍返回生成的文件路径。

        Args:
            query: SQL语句
            params: 可选的DBAPI参数

        Returns:
            CSV文件路径。语句不返回结果集时该路径上没有文件，
            调用方需要自行检查文件是否存在

        Raises:
            DatabaseConnectionError: 连接失败（包括要求TLS而连接未加密）
            QueryError: SQL执行或读取结果失败（已写入的部分文件不会删除）
        """
        logger.info("执行SQL查询: type=mysql status=started")

        path = self._new_result_path()
        started = time.perf_counter()

        with self.connect() as connection:
            try:
                result = connection.execution_options(
                    stream_results=True,
                    yield_per=MYSQL_FETCH_SIZE,
                    no_parameters=params is None,
                ).exec_driver_sql(query, params)

                if result.returns_rows:
                    row_count = self._write_result(result, path)
                    logger.debug(f"结果已写入: path={path}, rows={row_count}")
                else:
                    logger.debug("语句执行完成（无返回结果）")
            except SQLAlchemyError as e:
                log_sql_error(logger, query, self.url, e, params)
                raise QueryError(f"SQL执行失败: {e}") from e

        duration = time.perf_counter() - started
        logger.info(f"执行SQL查询: type=mysql status=finished duration={duration:.3f}")
        return str(path)

    def _new_result_path(self) -> Path:
        """{随机token}_{unix时间戳}.csv"""
        output_dir = self.output_dir if self.output_dir is not None else get_output_dir()
        filename = f"{secrets.token_urlsafe(6)}_{int(time.time())}.csv"
        return output_dir / filename

    @staticmethod
    def _write_result(result: CursorResult, path: Path) -> int:
        """写表头和所有数据行，返回数据行数"""
        columns = list(result.keys())
        row_count = 0

        handle, writer = open_csv_writer(path)
        with handle:
            writer.writerow(columns)
            for row in result:
                writer.writerow([render_cell(value) for value in row])
                row_count += 1

        return row_count


def execute_query(
    descriptor: Union[ConnectionDescriptor, Mapping[str, Any]],
    sql: str,
    params: Optional[Any] = None,
    **kwargs
) -> str:
    """
    用连接描述执行一条SQL，返回结果CSV文件路径

    Args:
        descriptor: 连接描述（对象或配置字典）
        sql: SQL语句
        params: 可选的DBAPI参数
        **kwargs: 传给 MysqlClient 的其他参数（engine_factory, output_dir）
    """
    client = MysqlClient({'mysql_client': {'connection': descriptor}}, **kwargs)
    return client.realize_query(sql, params)


CloudResourceClientFactory.register_client('mysql', MysqlClient)
