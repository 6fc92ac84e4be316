"""Object Explorer integration for Hadoop/Spark/Yarn big-data clusters."""

__version__ = "0.1.0"
