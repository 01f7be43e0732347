"""
MySQL数据库适配器
同时支持 MongoDB BI Connector（MySQL 兼容协议）
"""
import re
import ssl
from typing import Any, Dict, NamedTuple, Tuple

from sqlalchemy.engine import URL

from ...errors import ConfigurationError, DatabaseConnectionError
from ..dto import ConnectionDescriptor, ResolvedConnection
from .base import DatabaseAdapter

JDBC_MYSQL_PATTERN = re.compile(r"jdbc:mysql://([^:/]+)(:([0-9]+))?(/)?")
JDBC_MYSQL_PROTOCOL = "jdbc:mysql://"
MYSQL_DEFAULT_PORT = 3306

MONGO_BI_DATABASE_TYPE = "MongoDBBI"
MONGO_BI_AUTH_PARAMS = (
    "authenticationPlugins=org.mongodb.mongosql.auth.plugin.MongoSqlAuthenticationPlugin"
)
URL_SUFFIX = "useCursorFetch=true&enabledTLSProtocols=TLSv1.2"


class SslOptions(NamedTuple):
    """某个 sslMode 对应的连接串参数和驱动参数"""
    query: str
    require_tls: bool
    verify_cert: bool
    verify_identity: bool


SSL_MODES: Dict[str, SslOptions] = {
    "verify-full": SslOptions(
        query="useSSL=true&verifyServerCertificate=true",
        require_tls=True,
        verify_cert=True,
        verify_identity=True,
    ),
    "require": SslOptions(
        query="useSSL=true&requireSSL=true&verifyServerCertificate=false",
        require_tls=True,
        verify_cert=False,
        verify_identity=False,
    ),
    "prefer": SslOptions(
        query="useSSL=true&requireSSL=false&verifyServerCertificate=false",
        require_tls=False,
        verify_cert=False,
        verify_identity=False,
    ),
}


class MySQLAdapter(DatabaseAdapter):
    """MySQL数据库适配器"""

    def resolve(self, descriptor: ConnectionDescriptor) -> ResolvedConnection:
        """解析主机和端口，并拼出带SSL参数的连接URL"""
        host, port = self.parse_host_port(descriptor.url)

        params = []
        if descriptor.database_type == MONGO_BI_DATABASE_TYPE:
            params.append(MONGO_BI_AUTH_PARAMS)
        params.append(self.get_ssl_fragment(descriptor.ssl_mode))
        params.append(URL_SUFFIX)

        full_url = f"{JDBC_MYSQL_PROTOCOL}{host}:{port}/{descriptor.database}?{'&'.join(params)}"
        return ResolvedConnection(host=host, port=port, full_url=full_url)

    @staticmethod
    def parse_host_port(url: str) -> Tuple[str, int]:
        """
        从 jdbc:mysql://host[:port][/] 形式的URL中解析主机和端口

        Args:
            url: 连接描述中的url字段

        Returns:
            (host, port)，未指定端口时为 3306

        Raises:
            ConfigurationError: 如果URL不符合格式
        """
        match = JDBC_MYSQL_PATTERN.search(url or "")
        if not match:
            raise ConfigurationError(f"cannot parse connection URL: {url!r}")

        host = match.group(1)
        port = int(match.group(3)) if match.group(3) else MYSQL_DEFAULT_PORT
        return host, port

    @staticmethod
    def get_ssl_options(ssl_mode: str) -> SslOptions:
        """
        查找 sslMode 对应的参数

        Raises:
            ConfigurationError: 如果 sslMode 不在 prefer / require / verify-full 之中
        """
        try:
            return SSL_MODES[ssl_mode]
        except KeyError:
            raise ConfigurationError(
                f"SSL Mode should be prefer, require and verify-full, got: {ssl_mode!r}"
            ) from None

    def get_ssl_fragment(self, ssl_mode: str) -> str:
        """获取 sslMode 对应的连接串查询参数"""
        return self.get_ssl_options(ssl_mode).query

    def get_sqlalchemy_url(self, descriptor: ConnectionDescriptor) -> URL:
        """构建 mysql+pymysql 连接URL"""
        host, port = self.parse_host_port(descriptor.url)
        basic = descriptor.authentication.basic
        return URL.create(
            self.get_driver_name(),
            username=basic.user_name,
            password=basic.password,
            host=host,
            port=port,
            database=descriptor.database,
        )

    def get_connect_args(self, descriptor: ConnectionDescriptor) -> Dict[str, Any]:
        """
        PyMySQL 连接参数

        关闭自动提交，服务端游标依赖非自动提交模式。
        prefer 不传 ssl，由 PyMySQL 默认行为协商TLS，服务端不支持时退回明文；
        require / verify-full 传入TLS上下文，服务端不支持TLS时拒绝连接。
        """
        connect_args: Dict[str, Any] = {"autocommit": False}
        if self.get_ssl_options(descriptor.ssl_mode).require_tls:
            connect_args["ssl"] = self.create_ssl_context(descriptor.ssl_mode)
        return connect_args

    def create_ssl_context(self, ssl_mode: str) -> ssl.SSLContext:
        """
        构建TLS上下文，最低 TLSv1.2

        verify-full 使用系统CA校验证书和主机名，其他模式只加密不校验。
        """
        ssl_options = self.get_ssl_options(ssl_mode)

        context = ssl.create_default_context()
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        context.check_hostname = ssl_options.verify_identity
        context.verify_mode = ssl.CERT_REQUIRED if ssl_options.verify_cert else ssl.CERT_NONE
        return context

    def get_driver_name(self) -> str:
        """获取MySQL驱动名称"""
        return "mysql+pymysql"


def ensure_tls(dbapi_connection, connection_record=None) -> None:
    """
    连接建立后确认传输层已加密

    作为引擎的 connect 事件使用；未加密时关闭连接并抛出异常。

    Raises:
        DatabaseConnectionError: 连接未使用TLS
    """
    if isinstance(getattr(dbapi_connection, "_sock", None), ssl.SSLSocket):
        return

    dbapi_connection.close()
    raise DatabaseConnectionError("SSL is required but the connection is not encrypted")
