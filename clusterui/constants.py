"""Option keys, gateway paths and node tags shared across the package."""

from __future__ import annotations

from enum import Enum

HADOOP_KNOX_PROVIDER = "HADOOP_KNOX"
SQL_PROVIDER = "MSSQL"

HOST_PROP = "host"
USER_PROP = "user"
KNOX_PORT_PROP = "knoxport"
PASSWORD_PROP = "password"

DEFAULT_KNOX_PORT = "30443"
DEFAULT_CLUSTER_USER = "root"

CLUSTER_ENDPOINTS_PROPERTY = "clusterEndpoints"
KNOX_ENDPOINT_NAME = "gateway"

OBJECT_EXPLORER_PREFIX = "objectexplorer://"
NODE_PATH_SEPARATOR = "/"
MESSAGE_PATH_SEGMENT = "message"

HDFS_PROTOCOL = "https"
WEBHDFS_PATH = "gateway/default/webhdfs/v1"
HDFS_ROOT_PATH = "/"
HDFS_LABEL = "HDFS"

SPARK_HISTORY_PATH = "gateway/default/sparkhistory/"
YARN_HISTORY_PATH = "gateway/default/yarn/cluster/apps"

SPARK_FILE_SUFFIXES = (".py", ".jar")


class NodeType(str, Enum):
    """Node type tags reported to the host UI."""

    ROOT = "hadoop:root"
    CONNECTION = "hdfs:connection"
    FOLDER = "hdfs:folder"
    FILE = "hdfs:file"
    MESSAGE = "hdfs:message"


class NodeSubType(str, Enum):
    """Optional sub type refining a node's context actions."""

    SPARK = "hdfs:spark"
