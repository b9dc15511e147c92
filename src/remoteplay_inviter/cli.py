""" cli.py

Command line flags, the banner and the help text. Only two flags exist, anything else on the command line is ignored.
"""
import argparse
import os
import sys
from typing import List, Optional

DEFAULT_PROGRAM_NAME = "remoteplay-inviter"


def banner(version: str) -> str:
    return f"""
        ------------------------------------------------------------------------------
                    ╦═╗┌─┐┌┬┐┌─┐┌┬┐┌─┐┌─┐┬  ┌─┐┬ ┬  ╦┌┐┌┬  ┬┬┌┬┐┌─┐┬─┐
                    ╠╦╝├┤ ││││ │ │ ├┤ ├─┘│  ├─┤└┬┘  ║│││└┐┌┘│ │ ├┤ ├┬┘
                    ╩╚═└─┘┴ ┴└─┘ ┴ └─┘┴  ┴─┘┴ ┴ ┴   ╩┘└┘ └┘ ┴ ┴ └─┘┴└─
                       Version: {version}                   by Kamesuta

            Invite your friends via Discord and play Steam games together for free!
        ------------------------------------------------------------------------------

        """


def usage(program: str) -> str:
    return f"""
        Usage: {program} [options]

        Options:
            -v, --version    Display the version of the program
            -h, --help       Display this help message
        """


def program_name() -> str:
    name = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else ""
    if not name or name == "__main__.py":
        return DEFAULT_PROGRAM_NAME
    return name


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    # help is handled by hand so it can be printed below the banner, through the console.
    parser = argparse.ArgumentParser(prog=program_name(), add_help=False)
    parser.add_argument("-v", "--version", action="store_true")
    parser.add_argument("-h", "--help", action="store_true")
    args, _ = parser.parse_known_args(argv)
    return args
