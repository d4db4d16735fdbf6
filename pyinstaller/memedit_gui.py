"""
Run PyInstaller against this script file to build a standalone executable.
Make sure that memedit is installed into the Python environment before.
"""

from memedit.cli import main

main()
