"""
Build a standalone ``hexunpack`` executable by running PyInstaller on this script.
The hexunpack package must already be installed in the current Python environment.
"""
from hexunpack.__main__ import main as _main

_main('__main__')
