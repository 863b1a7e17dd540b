"""
Siege's `.siegerc`-style configuration, built up during conversion and
rendered as `key = value` lines.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

DEFAULT_NOFOLLOW = (
    "ad.doubleclick.net",
    "pagead2.googlesyndication.com",
    "ads.pubsqrd.com",
    "ib.adnxs.com",
)


@dataclass
class Credentials:
    user: str
    password: str
    realm: str = ""

    def __str__(self) -> str:
        if self.realm:
            return f"{self.user}:{self.password}:{self.realm}"
        return f"{self.user}:{self.password}"


@dataclass
class RunConfiguration:
    """
    Load generator settings. Defaults mirror Siege's own; optional entries
    are None until something sets them and are then written out.
    """
    # Free `name = value` variables written ahead of everything else
    variables: Dict[str, str] = field(default_factory=dict)

    verbose: bool = True
    color: bool = True
    quiet: bool = False
    json_output: bool = True
    show_logfile: bool = True
    logging: bool = False
    logfile: Optional[str] = None
    get_method: str = "HEAD"
    use_parser: bool = True
    nofollow: List[str] = field(default_factory=lambda: list(DEFAULT_NOFOLLOW))
    csv: Optional[bool] = None
    timestamp: Optional[bool] = None
    fullurl: Optional[bool] = None
    display_id: Optional[bool] = None
    thread_limit: int = 255
    protocol: str = "HTTP/1.1"
    chunked: bool = True
    cache: bool = False
    connection: str = "close"
    concurrent: int = 25
    duration: Optional[str] = None
    reps: Optional[int] = None
    delay: float = 0.0
    url_file: Optional[str] = None
    single_url: Optional[str] = None
    timeout: Optional[int] = None
    expire_session: Optional[bool] = None
    use_cookies: bool = True
    allowed_failures: Optional[int] = None
    internet: bool = False
    benchmark: bool = False
    user_agent: Optional[str] = None
    accept_encoding: str = "gzip, deflate"
    url_escaping: bool = True
    login: Optional[Credentials] = None
    login_urls: List[str] = field(default_factory=list)
    ftp_login: Optional[Credentials] = None
    ftp_unique: bool = True
    ssl_cert: Optional[str] = None
    ssl_key: Optional[str] = None
    ssl_timeout: Optional[int] = None
    ssl_ciphers: Optional[str] = None
    proxy_host: Optional[str] = None
    proxy_port: Optional[int] = None
    proxy_login: Optional[Credentials] = None
    follow_location: bool = True
    # Ordered (name, value) pairs; a name may repeat
    headers: List[Tuple[str, str]] = field(default_factory=list)

    def add_header(self, name: str, value: str) -> None:
        self.headers.append((name, value))

    def to_text(self) -> str:
        lines = [f"{name} = {value}" for name, value in self.variables.items()]
        for entry in CONFIG_FIELDS:
            value = entry.accessor(self)
            if entry.optional and value is None:
                continue
            lines.extend(f"{entry.key} = {rendered}" for rendered in entry.formatter(value))
        return "".join(f"{line}\n" for line in lines)


class ConfigField(NamedTuple):
    key: str
    accessor: Callable[[RunConfiguration], Any]
    formatter: Callable[[Any], List[str]]
    # Skip the line when the value is None
    optional: bool = False


def _true_false(value: bool) -> List[str]:
    return ["true" if value else "false"]


def _on_off(value: bool) -> List[str]:
    return ["on" if value else "off"]


def _text(value: Any) -> List[str]:
    return [str(value)]


def _decimal(value: float) -> List[str]:
    return [f"{value:f}"]


def _each(values: List[str]) -> List[str]:
    return [str(v) for v in values]


def _headers(values: List[Tuple[str, str]]) -> List[str]:
    return [f"{name}: {value}" for name, value in values]


def _attr(name: str) -> Callable[[RunConfiguration], Any]:
    return lambda conf: getattr(conf, name)


# Order here is the order of lines in the written file
CONFIG_FIELDS: Tuple[ConfigField, ...] = (
    ConfigField("verbose", _attr("verbose"), _true_false),
    ConfigField("color", _attr("color"), _on_off),
    ConfigField("quiet", _attr("quiet"), _true_false),
    ConfigField("json_output", _attr("json_output"), _true_false),
    ConfigField("show-logfile", _attr("show_logfile"), _true_false),
    ConfigField("logging", _attr("logging"), _true_false),
    ConfigField("logfile", _attr("logfile"), _text, optional=True),
    ConfigField("gmethod", _attr("get_method"), _text),
    ConfigField("parser", _attr("use_parser"), _true_false),
    ConfigField("nofollow", _attr("nofollow"), _each),
    ConfigField("csv", _attr("csv"), _true_false, optional=True),
    ConfigField("timestamp", _attr("timestamp"), _true_false, optional=True),
    ConfigField("fullurl", _attr("fullurl"), _true_false, optional=True),
    ConfigField("display-id", _attr("display_id"), _true_false, optional=True),
    ConfigField("limit", _attr("thread_limit"), _text),
    ConfigField("protocol", _attr("protocol"), _text),
    ConfigField("chunked", _attr("chunked"), _true_false),
    ConfigField("cache", _attr("cache"), _true_false),
    ConfigField("connection", _attr("connection"), _text),
    ConfigField("concurrent", _attr("concurrent"), _text),
    ConfigField("time", _attr("duration"), _text, optional=True),
    ConfigField("reps", _attr("reps"), _text, optional=True),
    ConfigField("delay", _attr("delay"), _decimal),
    ConfigField("file", _attr("url_file"), _text, optional=True),
    ConfigField("url", _attr("single_url"), _text, optional=True),
    ConfigField("timeout", _attr("timeout"), _text, optional=True),
    ConfigField("expire-session", _attr("expire_session"), _true_false, optional=True),
    ConfigField("cookies", _attr("use_cookies"), _true_false),
    ConfigField("failures", _attr("allowed_failures"), _text, optional=True),
    ConfigField("internet", _attr("internet"), _true_false),
    ConfigField("benchmark", _attr("benchmark"), _true_false),
    ConfigField("user-agent", _attr("user_agent"), _text, optional=True),
    ConfigField("accept-encoding", _attr("accept_encoding"), _text),
    ConfigField("url-escaping", _attr("url_escaping"), _true_false),
    ConfigField("login", _attr("login"), _text, optional=True),
    ConfigField("login-url", _attr("login_urls"), _each),
    ConfigField("ftp-login", _attr("ftp_login"), _text, optional=True),
    ConfigField("unique", _attr("ftp_unique"), _true_false),
    ConfigField("ssl-cert", _attr("ssl_cert"), _text, optional=True),
    ConfigField("ssl-key", _attr("ssl_key"), _text, optional=True),
    ConfigField("ssl-timeout", _attr("ssl_timeout"), _text, optional=True),
    ConfigField("ssl-ciphers", _attr("ssl_ciphers"), _text, optional=True),
    ConfigField("proxy-host", _attr("proxy_host"), _text, optional=True),
    ConfigField("proxy-port", _attr("proxy_port"), _text, optional=True),
    ConfigField("proxy-login", _attr("proxy_login"), _text, optional=True),
    ConfigField("follow-location", _attr("follow_location"), _true_false),
    ConfigField("header", _attr("headers"), _headers),
)
