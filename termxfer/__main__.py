"""
Entry point for termxfer.
"""
import argparse
import curses
import getpass
import locale
import logging
import os

from . import __version__
from .activities.filetransfer import ExitReason, FileTransferActivity
from .core.bootstrap import Terminal
from .core.config import load_config
from .core.context import Context
from .core.event_loop import run_activity
from .filetransfer import parse_remote_address

LOGGER = logging.getLogger(__name__)

# Ensure UTF-8
try:
    locale.setlocale(locale.LC_ALL, '')
except locale.Error:
    pass


def configure_logging(environ=None):
    """Install the logging sink selected by TERMXFER_DEBUG / TERMXFER_LOG_FILE."""
    environ = os.environ if environ is None else environ
    debug = bool(environ.get('TERMXFER_DEBUG'))
    log_file = environ.get('TERMXFER_LOG_FILE')
    if not debug and not log_file:
        return False
    options = {
        'level': logging.DEBUG if debug else logging.INFO,
        'format': '[%(levelname)s] %(name)s: %(message)s',
    }
    if log_file:
        options['filename'] = log_file
    logging.basicConfig(**options)
    return True


def build_parser():
    parser = argparse.ArgumentParser(
        prog='termxfer',
        description='Dual-pane terminal file transfer client (SFTP, SCP, FTP, FTPS).',
    )
    parser.add_argument('address', help='[protocol://][user@]host[:port][:/path]')
    parser.add_argument('-P', '--password', help='password (prefer --ask-password)')
    parser.add_argument('-p', '--ask-password', action='store_true', help='prompt for the password')
    parser.add_argument('-c', '--config', help='path to config.toml')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(stdscr, config, params):
    context = Context(terminal=Terminal(stdscr), config=config, ft_params=params)
    return run_activity(FileTransferActivity(), context)


def run(argv=None):
    """Run termxfer and return process exit code."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)

    password = args.password
    if args.ask_password and password is None:
        password = getpass.getpass('Password: ')
    try:
        params = parse_remote_address(args.address, password=password)
    except ValueError as exc:
        parser.error(str(exc))

    config = load_config(args.config)
    LOGGER.info('starting termxfer %s for %s', __version__, params.describe())
    try:
        reason = curses.wrapper(main, config, params)
        print('\033c', end='')
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        # Top-level crash guard restores the terminal before reporting.
        try:
            curses.endwin()
        except curses.error:
            pass
        LOGGER.exception('termxfer crashed')
        print(f'\nError: {e}')
        return 1
    LOGGER.info('termxfer exited: %s', reason)
    return 0 if reason in (ExitReason.QUIT, ExitReason.DISCONNECT) else 1


def main_cli():
    """Console script entrypoint."""
    return run()


if __name__ == '__main__':
    raise SystemExit(main_cli())
