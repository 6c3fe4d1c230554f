"""Transport subsystem: socket client, protocol codecs, and credential resolution."""

from cmux_ctl.transport.client import SocketClient as SocketClient
from cmux_ctl.transport.credentials import resolve_password as resolve_password
from cmux_ctl.transport.protocol import quote_argument as quote_argument
