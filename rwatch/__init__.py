"""Redis Watcher.

Small long-running process that:
 - keeps one supervised connection to a Redis server (retrying forever)
 - logs connectivity loss and restoration on that connection
 - every few seconds opens a fresh connection and evaluates a trivial script

Every log line carries a timestamp and a correlation id so the lines of a
single health-check tick can be grouped together.
"""

__version__ = "0.1.0"
