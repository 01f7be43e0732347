"""
MySQL查询执行器测试
用注入的 SQLite 引擎代替 MySQL 服务器
"""
import logging
import re
import sys
from pathlib import Path

# 添加项目根目录到Python路径
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest
from sqlalchemy import create_engine, event, text
from sqlalchemy.pool import NullPool

from mysql_csv.errors import ConfigurationError, DatabaseConnectionError, QueryError
from mysql_csv.services.cloud_resources import CloudResourceClientFactory
from mysql_csv.services.dto import ConnectionDescriptor
from mysql_csv.services.mysql_client import MysqlClient, execute_query, render_cell
from mysql_csv.utils.csv_helpers import csv_read

FILENAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{8}_\d+\.csv$")


@pytest.fixture
def connection_info():
    """连接信息"""
    return {
        "url": "jdbc:mysql://dbhost:3307/",
        "database": "school",
        "sslMode": "require",
        "authentication": {"basic": {"userName": "reader", "password": "s3cret"}},
    }


@pytest.fixture
def sqlite_path(tmp_path):
    """准备测试数据库"""
    db_path = tmp_path / "school.db"
    engine = create_engine(f"sqlite:///{db_path}")
    with engine.begin() as connection:
        connection.execute(text(
            "CREATE TABLE students (id INTEGER PRIMARY KEY, name TEXT, grade REAL)"
        ))
        connection.execute(text(
            "INSERT INTO students (id, name, grade) VALUES "
            "(1, 'Alice', 85.5), (2, NULL, 90.0), (3, 'Bob, Jr.', NULL)"
        ))
    engine.dispose()
    return db_path


class EngineRecorder:
    """记录引擎创建参数和连接的借出/归还"""

    def __init__(self, db_path):
        self.db_path = db_path
        self.calls = []
        self.checkouts = 0
        self.checkins = 0
        self.execution_options = []

    def __call__(self, url, connect_args):
        self.calls.append((url, connect_args))
        engine = create_engine(f"sqlite:///{self.db_path}", poolclass=NullPool)
        event.listen(engine, "checkout", self._on_checkout)
        event.listen(engine, "checkin", self._on_checkin)
        event.listen(engine, "before_cursor_execute", self._on_execute)
        return engine

    def _on_checkout(self, *args):
        self.checkouts += 1

    def _on_checkin(self, *args):
        self.checkins += 1

    def _on_execute(self, conn, cursor, statement, parameters, context, executemany):
        self.execution_options.append(dict(context.execution_options))


@pytest.fixture
def recorder(sqlite_path):
    return EngineRecorder(sqlite_path)


@pytest.fixture
def client(connection_info, recorder, tmp_path):
    """使用SQLite引擎的客户端"""
    output_dir = tmp_path / "out"
    output_dir.mkdir()
    return MysqlClient(
        {"mysql_client": {"connection": connection_info}},
        engine_factory=recorder,
        output_dir=output_dir,
    )


class TestMysqlClientOptions:
    """测试客户端配置校验"""

    def test_missing_mysql_client(self):
        """缺少 mysql_client"""
        with pytest.raises(ConfigurationError, match="'mysql_client' is empty"):
            MysqlClient({})

    def test_missing_connection(self):
        """connection 不是字典"""
        with pytest.raises(ConfigurationError, match="Missing connection info"):
            MysqlClient({"mysql_client": {"connection": "jdbc:mysql://dbhost/"}})

    def test_invalid_ssl_mode(self, connection_info, recorder):
        """非法 sslMode 在连接之前被拒绝"""
        connection_info["sslMode"] = "disable"
        with pytest.raises(ConfigurationError):
            MysqlClient({"mysql_client": {"connection": connection_info}}, engine_factory=recorder)
        assert recorder.calls == []

    def test_unparsable_url(self, connection_info, recorder):
        """无法解析的URL在连接之前被拒绝"""
        connection_info["url"] = "dbhost:3307"
        with pytest.raises(ConfigurationError, match="cannot parse connection URL"):
            MysqlClient({"mysql_client": {"connection": connection_info}}, engine_factory=recorder)
        assert recorder.calls == []

    def test_accepts_descriptor_instance(self, connection_info):
        """connection 可以直接是 ConnectionDescriptor"""
        descriptor = ConnectionDescriptor.parse(connection_info)
        client = MysqlClient({"mysql_client": {"connection": descriptor}})
        assert client.descriptor is descriptor
        assert client.url.startswith("jdbc:mysql://dbhost:3307/school?")

    def test_accept(self):
        """只处理 mysql 类型"""
        assert MysqlClient.accept("mysql")
        assert not MysqlClient.accept("postgresql")


class TestRealizeQuery:
    """测试查询执行和CSV输出"""

    def test_writes_header_and_rows(self, client):
        """第一行是列名，之后是数据行，NULL写为空"""
        path = Path(client.realize_query("SELECT id, name, grade FROM students ORDER BY id"))

        assert path.read_text(encoding="utf-8") == (
            "id,name,grade\n"
            "1,Alice,85.5\n"
            "2,,90.0\n"
            '3,"Bob, Jr.",\n'
        )

    def test_column_order_follows_select(self, client):
        """列顺序与结果集一致"""
        path = client.realize_query("SELECT grade, id FROM students WHERE id = 1")
        assert csv_read(path, lambda row: row) == [["grade", "id"], ["85.5", "1"]]

    def test_null_is_not_rendered_as_word(self, client):
        """NULL 不会写成 None 或 null"""
        path = Path(client.realize_query("SELECT name FROM students WHERE id = 2"))
        content = path.read_text(encoding="utf-8")
        assert "None" not in content
        assert "null" not in content.lower()

    def test_empty_result_writes_header_only(self, client):
        """没有数据行时只写表头"""
        path = Path(client.realize_query("SELECT id, name FROM students WHERE 1 = 0"))
        assert path.read_text(encoding="utf-8") == "id,name\n"

    def test_statement_without_result_set(self, client, recorder):
        """DDL 不返回结果集时不写文件"""
        path = Path(client.realize_query("CREATE TABLE courses (id INTEGER)"))
        assert not path.exists()
        assert recorder.checkouts == recorder.checkins == 1

    def test_filename_format(self, client, tmp_path):
        """文件名是 {token}_{时间戳}.csv"""
        path = Path(client.realize_query("SELECT 1 AS one"))
        assert path.parent == tmp_path / "out"
        assert FILENAME_PATTERN.match(path.name)

    def test_one_file_per_call(self, client, tmp_path):
        """每次调用生成一个文件"""
        client.realize_query("SELECT 1 AS one")
        client.realize_query("SELECT 2 AS two")
        assert len(list((tmp_path / "out").glob("*.csv"))) == 2

    def test_query_params(self, client):
        """参数传给驱动"""
        path = client.realize_query("SELECT name FROM students WHERE id = ?", (1,))
        assert csv_read(path, lambda row: row, header=True) == [["Alice"]]

    def test_percent_literal_without_params(self, client):
        """没有参数时SQL原样执行"""
        path = client.realize_query("SELECT '100%' AS ratio")
        assert csv_read(path, lambda row: row, header=True) == [["100%"]]

    def test_engine_receives_mysql_url(self, client, recorder):
        """引擎使用 mysql+pymysql URL 和驱动参数"""
        client.realize_query("SELECT 1 AS one")

        url, connect_args = recorder.calls[0]
        assert url.drivername == "mysql+pymysql"
        assert (url.host, url.port, url.database) == ("dbhost", 3307, "school")
        assert (url.username, url.password) == ("reader", "s3cret")
        assert connect_args["autocommit"] is False
        assert "ssl" in connect_args

    def test_streams_with_fetch_size(self, client, recorder):
        """查询使用服务端游标，每次拉取 1000 行"""
        client.realize_query("SELECT id FROM students")

        options = recorder.execution_options[-1]
        assert options["yield_per"] == 1000
        assert options["stream_results"] is True

    def test_connection_released(self, client, recorder):
        """查询完成后连接被归还"""
        client.realize_query("SELECT id FROM students")
        assert recorder.checkouts == 1
        assert recorder.checkins == 1

    def test_query_error(self, client, recorder):
        """SQL错误包装为 QueryError，连接仍然释放"""
        with pytest.raises(QueryError, match="SQL执行失败") as exc_info:
            client.realize_query("SELECT * FROM missing_table")

        assert exc_info.value.__cause__ is not None
        assert recorder.checkouts == recorder.checkins == 1

    def test_connection_error(self, connection_info, tmp_path):
        """无法建立连接时抛出 DatabaseConnectionError"""
        def unreachable(url, connect_args):
            return create_engine(f"sqlite:///{tmp_path / 'missing' / 'db.sqlite'}", poolclass=NullPool)

        client = MysqlClient(
            {"mysql_client": {"connection": connection_info}},
            engine_factory=unreachable,
            output_dir=tmp_path,
        )
        with pytest.raises(DatabaseConnectionError, match="无法连接MySQL"):
            client.realize_query("SELECT 1")

        assert list(tmp_path.glob("*.csv")) == []

    def test_logs_start_and_finish(self, client, caplog):
        """记录开始和结束日志"""
        caplog.set_level(logging.INFO, logger="mysql_csv")
        client.realize_query("SELECT 1 AS one")

        messages = [record.getMessage() for record in caplog.records]
        assert any("建立MySQL连接: jdbc:mysql://dbhost:3307/school?" in m for m in messages)
        assert any("type=mysql status=started" in m for m in messages)
        assert any("type=mysql status=finished duration=" in m for m in messages)
        assert not any("s3cret" in m for m in messages)


def test_execute_query(connection_info, sqlite_path, tmp_path):
    """模块级函数：连接描述 + SQL -> 文件路径"""
    path = execute_query(
        connection_info,
        "SELECT id FROM students ORDER BY id",
        engine_factory=EngineRecorder(sqlite_path),
        output_dir=tmp_path,
    )
    assert csv_read(path, lambda row: int(row[0]), header=True) == [1, 2, 3]


def test_default_output_dir(connection_info, sqlite_path, tmp_path, monkeypatch):
    """默认输出目录来自 MYSQL_CSV_OUTPUT_DIR"""
    output_dir = tmp_path / "exports"
    monkeypatch.setenv("MYSQL_CSV_OUTPUT_DIR", str(output_dir))

    path = Path(execute_query(connection_info, "SELECT 1 AS one", engine_factory=EngineRecorder(sqlite_path)))
    assert path.parent == output_dir
    assert path.exists()


@pytest.mark.parametrize("value, expected", [
    (None, ""),
    ("", ""),
    (0, "0"),
    (1.5, "1.5"),
    (b"raw", "raw"),
    (b"\xff\xfeok", "\ufffd\ufffdok"),
    (bytearray(b"\xe6\x96\x87"), "文"),
    ("文本", "文本"),
])
def test_render_cell(value, expected):
    """单元格渲染"""
    assert render_cell(value) == expected


def test_client_factory(connection_info):
    """按类型获取客户端"""
    assert CloudResourceClientFactory.is_supported("mysql")
    assert "mysql" in CloudResourceClientFactory.get_supported_types()

    client = CloudResourceClientFactory.get_client("mysql", {"mysql_client": {"connection": connection_info}})
    assert isinstance(client, MysqlClient)

    with pytest.raises(ConfigurationError, match="不支持的数据源类型"):
        CloudResourceClientFactory.get_client("redshift", {})
