#!/usr/bin/env python3
"""
Entry point for running xml_node_stream as a module.

This allows the package to be run with:
    python -m xml_node_stream
"""

from xml_node_stream.cli import main

if __name__ == "__main__":
    main()
