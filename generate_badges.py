#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Generate badge or certificate PDFs from a JSON data file.
"""

# Standard Library
import sys

# local repo modules
import badge_compositor.cli


if __name__ == "__main__":
	sys.exit(badge_compositor.cli.main())
