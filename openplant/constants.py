"""Wire-level constants of the OpenPlant protocol and names of its system tables."""

from __future__ import annotations

from enum import IntEnum, IntFlag

MAGIC = 0x10203040
PROTOCOL_MAGIC = MAGIC
DEFAULT_CHUNK_SIZE = 200


class Command(IntEnum):
    """Native command codes."""

    SELECT = 110
    UPDATE = 120
    INSERT = 130
    DELETE = 140
    REPLACE = 150


class URL(IntEnum):
    """Native resource selectors."""

    SCHEME = 0x20000000
    ID = 0x21000000
    STATIC = 0x22000000
    DYNAMIC = 0x23000000
    CHILD_ID = 0x24000000
    CHILD_STATIC = 0x25000000
    CHILD_DYNAMIC = 0x26000000
    ALARM = 0x2A000000
    CHILD_ALARM = 0x2B000000
    ARCHIVE = 0x30000000
    CLOUD_NODES = 0x40000000
    CLOUD_NODE = 0x41000000
    CLOUD_DBS = 0x42000000
    CLOUD_DB = 0x43000000
    CLOUD_TIME = 0x44000000
    ECHO = 0x46000000


class Flag(IntFlag):
    """Native request flags."""

    BY_NAME = 1
    BY_ID = 2
    FILTER = 4
    NO_DS = 0x40
    NO_TM = 0x80
    WALL = 0x100
    MMI = 0x200
    SYNC = 0x400
    CTRL = 0x800
    FEEDBACK = 0x1000
    CACHE = 0x2000


PROP_REQ_ID = "Reqid"
PROP_SERVICE = "Service"
PROP_TABLE = "Table"
PROP_ACTION = "Action"
PROP_SUBJECT = "Subject"
PROP_OPTION = "Option"
PROP_ORDER_BY = "OrderBy"
PROP_LIMIT = "Limit"
PROP_ASYNC = "Async"
PROP_COLUMNS = "Columns"
PROP_KEY = "Key"
PROP_INDEXES = "Indexes"
PROP_FILTERS = "Filters"
PROP_ERROR = "Error"
PROP_ERR_NO = "Errno"
PROP_SQL = "SQL"
PROP_TOKEN = "Token"
PROP_DB = "db"
PROP_TIMESTAMP = "Time"
PROP_SNAPSHOT = "Snapshot"
PROP_SUBSCRIBE = "Subscribe"

ACTION_CREATE = "Create"
ACTION_SELECT = "Select"
ACTION_INSERT = "Insert"
ACTION_UPDATE = "Update"
ACTION_REPLACE = "Replace"
ACTION_DELETE = "Delete"
ACTION_EXEC_SQL = "ExecSQL"
ACTION_COMMIT = "Commit"

TABLE_PRODUCT = "Product"
TABLE_ROOT = "Root"
TABLE_SERVER = "Server"
TABLE_DATABASE = "Database"
TABLE_DAS = "DAS"
TABLE_DEVICE = "Device"
TABLE_NODE = "Node"
TABLE_POINT = "Point"
TABLE_REALTIME = "Realtime"
TABLE_ARCHIVE = "Archive"
TABLE_STAT = "Stat"
TABLE_ALARM = "Alarm"
TABLE_AALARM = "AAlarm"
TABLE_USER = "User"
TABLE_GROUPS = "Groups"
TABLE_ACCESS = "Access"
TABLE_REPLICATOR = "Replicator"
TABLE_REP_ITEM = "RepItem"