#!/usr/bin/env python3
"""RF433 - a shared-radio signal layer for 433MHz remotes and sockets."""

__version__ = "0.4.2"
VERSION = __version__
