"""
File operations on either side of the file transfer activity.

Every helper raises a TermxferError subclass on failure; callers report it.
"""
import logging
import os
import posixpath
import shlex
import subprocess
import sys
from io import BytesIO

from ...errors import HostError, RemoteError, RemoteErrorKind
from .browser import Side

LOGGER = logging.getLogger(__name__)


def _system_opener():
    return 'open' if sys.platform == 'darwin' else 'xdg-open'


def make_directory(act, side, path):
    if side == Side.LOCAL:
        act.host.mkdir(path)
    else:
        act.session.invoke('mkdir', path)
    act.log.info(f'Created directory {path}')


def create_file(act, side, path):
    if side == Side.LOCAL:
        act.host.create_file(path)
    else:
        if act.session.invoke('exists', path):
            raise RemoteError(RemoteErrorKind.IO, f'File already exists: {path}')
        act.session.invoke('put', BytesIO(b''), path, size=0)
    act.log.info(f'Created file {path}')


def remove_entry(act, side, entry):
    if side == Side.LOCAL:
        act.host.remove(entry)
    else:
        act.session.invoke('remove', entry)
    act.log.info(f'Removed {entry.path}')


def rename_entry(act, side, entry, dst):
    if side == Side.LOCAL:
        act.host.rename(entry.path, dst)
    else:
        act.session.invoke('rename', entry.path, dst)
    act.log.info(f'Moved {entry.path} to {dst}')


def create_symlink(act, side, entry, link):
    if side == Side.LOCAL:
        act.host.symlink(entry.path, link)
    else:
        act.session.invoke('symlink', entry.path, link)
    act.log.info(f'Created symlink {link} -> {entry.path}')


def exec_command(act, side, command):
    """Run `command` on the side and send its output to the log."""
    if side == Side.LOCAL:
        output = act.host.exec(command)
    else:
        output = act.session.invoke('exec', command)
    act.log.info(f'Executed "{command}"')
    for line in output.splitlines():
        if line.strip():
            act.log.info(line)
    return output


def copy_entry(act, side, entry, dst):
    """Copy on the same side; remote copies go through the cache when unsupported."""
    if side == Side.LOCAL:
        act.host.copy(entry, dst)
    else:
        try:
            act.session.invoke('copy', entry, dst)
        except RemoteError as exc:
            if exc.kind != RemoteErrorKind.UNSUPPORTED:
                raise
            LOGGER.debug('remote copy unsupported, going through the cache')
            local = os.path.join(cache_dir(act), f'copy-{entry.name}')
            try:
                download_tree(act, entry, local)
                upload_tree(act, local, dst)
            finally:
                if act.host.exists(local):
                    act.host.remove(act.host.stat(local))
    act.log.info(f'Copied {entry.path} to {dst}')


def cache_dir(act):
    if act.cache is None:
        raise HostError('temporary cache is not available')
    return act.cache.name


def download_tree(act, entry, local_path):
    if entry.is_dir:
        act.host.mkdir(local_path)
        for child in act.session.invoke('list_dir', entry.path):
            download_tree(act, child, os.path.join(local_path, child.name))
        return
    with act.host.open_write(local_path) as fh:
        act.session.invoke('get', entry.path, fh)


def upload_tree(act, local_path, remote_path):
    entry = act.host.stat(local_path)
    if entry.is_dir:
        act.session.invoke('mkdir', remote_path)
        for child in act.host.list_dir(local_path):
            upload_tree(act, child.path, posixpath.join(remote_path, child.name))
        return
    with act.host.open_read(local_path) as fh:
        act.session.invoke('put', fh, remote_path, size=entry.size)


def fetch_to_cache(act, entry):
    """Download a remote file into the cache and return the local path."""
    if entry.is_dir:
        raise HostError(f'{entry.path} is a directory', path=entry.path)
    local = os.path.join(cache_dir(act), entry.name)
    download_tree(act, entry, local)
    return local


def _local_copy(act, side, entry):
    return entry.path if side == Side.LOCAL else fetch_to_cache(act, entry)


def open_file(act, side, entry, program=None):
    """Open with the system opener, or with `program` when given."""
    path = _local_copy(act, side, entry)
    argv = shlex.split(program) if program else [_system_opener()]
    try:
        subprocess.Popen(
            argv + [path],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as exc:
        raise HostError.from_os_error(exc, argv[0]) from exc
    act.log.info(f'Opened {entry.path} with {argv[0]}')


def edit_text_file(act, side, entry):
    """Edit in the configured editor; edited remote files are uploaded back."""
    editor = act.context.config.text_editor or os.environ.get('EDITOR') or 'vi'
    path = _local_copy(act, side, entry)
    before = act.host.stat(path).modified_time
    with act.context.terminal.suspend():
        try:
            subprocess.run(shlex.split(editor) + [path], check=False)
        except OSError as exc:
            raise HostError.from_os_error(exc, editor) from exc
    act.log.info(f'Edited {entry.path}')
    if side == Side.REMOTE and act.host.stat(path).modified_time != before:
        upload_tree(act, path, entry.path)
        act.log.info(f'Uploaded changes to {entry.path}')
