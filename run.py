#!/usr/bin/env python
"""
Run script for calcbot.
Starts the web server, or the interactive CLI when arguments are given
(e.g. ``python run.py --account bill``), without installing the package.
"""

from calcbot.app import main

if __name__ == "__main__":
    main()
