#!/usr/bin/env python3
"""
Name: datefile
Description: create, archive, back up and re-stamp date-stamped files
License: artistic2
"""

import sys
import os
import re
import shutil
import argparse
import subprocess
from datetime import datetime

__version__ = "1.2"

COMMANDS = ['create', 'archive', 'backup', 'touch']

# An existing stamp, in any of the shapes compose_stamped_name() produces:
# YYYY-MM-DD, optionally followed by _HH.MM.SS, with the underscore that
# joined it to the base name on either side.
STAMP_PATTERN = re.compile(r'_?\d{4}-\d{2}-\d{2}(?:_\d{2}\.\d{2}\.\d{2})?_?')

# Compression tag -> how tar is asked for it, what the archive is called,
# and which program tar will need on the PATH.
COMPRESSIONS = {
    'none':  {'option': None,     'extension': '',     'command': None},
    'gzip':  {'option': '-z',     'extension': '.gz',  'command': 'gzip'},
    'bzip2': {'option': '-j',     'extension': '.bz2', 'command': 'bzip2'},
    'xz':    {'option': '-J',     'extension': '.xz',  'command': 'xz'},
    'zstd':  {'option': '--zstd', 'extension': '.zst', 'command': 'zstd'},
}


class InvalidInput(ValueError):
    """Bad or missing command-line operands."""


class ExternalCommandError(Exception):
    """The tar binary or a compressor is missing or failed."""


# --- Filename stamping ---

def split_filename(name: str):
    """
    Splits the last segment of a path into (extension, base_name).

    Dotfiles such as '.gitignore' are all extension and no base name, so
    that stamping them gives '2024-03-05.gitignore'.
    """
    segment = os.path.basename(name.rstrip(os.sep))
    if segment.startswith('.'):
        return segment, ''

    base_name, extension = os.path.splitext(segment)
    return extension, base_name

def format_date(date) -> str:
    """Formats a date as YYYY-MM-DD."""
    return f"{date.year:04d}-{date.month:02d}-{date.day:02d}"

def format_time(date) -> str:
    """Formats a time of day as HH.MM.SS."""
    return f"{date.hour:02d}.{date.minute:02d}.{date.second:02d}"

def compose_stamped_name(date, base_name: str, extension: str, suffix_mode: bool, include_time: bool) -> str:
    """
    Builds a stamped filename from its parts.

    The stamp goes before the base name, or after it in suffix mode,
    joined by a single underscore. The extension is appended as given.
    """
    stamp = format_date(date)
    if include_time:
        stamp += '_' + format_time(date)

    if not base_name:
        filename = stamp
    elif suffix_mode:
        filename = f"{base_name}_{stamp}"
    else:
        filename = f"{stamp}_{base_name}"

    return filename + extension

def extract_stamp(name: str, pattern=STAMP_PATTERN):
    """
    Removes the first date stamp found in a filename.

    Returns (stripped_name, found). When there is no stamp the name comes
    back unchanged. Matching is purely lexical, '9999-99-99' counts.
    """
    match = pattern.search(name)
    if match is None:
        return name, False
    return name[:match.start()] + name[match.end():], True


# --- Compression ---

def select_compression(gzip=False, bzip2=False, xz=False, zstd=False) -> str:
    """Returns the compression tag for the flags given, at most one may be set."""
    chosen = [tag for tag, flag in (('gzip', gzip), ('bzip2', bzip2), ('xz', xz), ('zstd', zstd)) if flag]
    if len(chosen) > 1:
        raise InvalidInput(f"conflicting compression options: {', '.join(chosen)}")
    return chosen[0] if chosen else 'none'


# --- Commands ---

def split_path(path: str):
    """
    Splits a path into (parent, name) where name is the last segment.
    Paths such as '.' or 'dir/..' are resolved so the name is a real one.
    """
    path = os.path.normpath(path)
    name = os.path.basename(path)
    if name in ('', '.', '..'):
        path = os.path.abspath(path)
        name = os.path.basename(path)
    return os.path.dirname(path), name

def require_operand(path):
    if not path:
        raise InvalidInput("missing file operand")

def require_source(path: str):
    require_operand(path)
    if not os.path.lexists(path):
        raise FileNotFoundError(f"cannot stat '{path}': No such file or directory")

def require_free(dest: str):
    if os.path.lexists(dest):
        raise FileExistsError(f"'{dest}' already exists")

def create_file(raw_name: str, date, suffix=False, include_time=False):
    """
    Creates an empty stamped file.
    Returns (path, created); an existing file is left alone.
    """
    require_operand(raw_name)

    parent = os.path.dirname(raw_name.rstrip(os.sep))
    extension, base_name = split_filename(raw_name)
    filename = os.path.join(parent, compose_stamped_name(date, base_name, extension, suffix, include_time))

    if os.path.exists(filename):
        return filename, False

    open(filename, 'a').close()
    return filename, True

def archive_path(source: str, date, suffix=False, include_time=False, compression='none', tar=None) -> str:
    """
    Packs a file or directory into a stamped tar archive next to it,
    e.g. 'photos' becomes '2024-03-05_photos.tar.gz'.
    """
    require_source(source)

    spec = COMPRESSIONS[compression]
    parent, name = split_path(source)
    dest = os.path.join(parent, compose_stamped_name(date, name, '.tar' + spec['extension'], suffix, include_time))
    require_free(dest)

    tar = tar or os.environ.get('TAR') or 'tar'
    if shutil.which(tar) is None:
        raise ExternalCommandError(f"{tar}: command not found")
    if spec['command'] and shutil.which(spec['command']) is None:
        raise ExternalCommandError(f"{spec['command']}: command not found")

    command = [tar, '-c']
    if spec['option']:
        command.append(spec['option'])
    command += ['-f', dest, '-C', parent or '.', name]

    try:
        proc = subprocess.run(command)
    except OSError as e:
        raise ExternalCommandError(f"{tar}: {e.strerror}")

    if proc.returncode != 0:
        # Don't leave a truncated archive behind.
        if os.path.isfile(dest):
            os.remove(dest)
        raise ExternalCommandError(f"{tar} exited with status {proc.returncode}")

    return dest

def backup_path(source: str, date, suffix=False, include_time=False) -> str:
    """
    Copies a file or directory to a stamped sibling.
    Files keep their extension, directories are stamped on their whole name.
    """
    require_source(source)

    parent, name = split_path(source)
    if os.path.isdir(source):
        dest = os.path.join(parent, compose_stamped_name(date, name, '', suffix, include_time))
        require_free(dest)
        shutil.copytree(source, dest, symlinks=True)
    else:
        extension, base_name = split_filename(name)
        dest = os.path.join(parent, compose_stamped_name(date, base_name, extension, suffix, include_time))
        require_free(dest)
        shutil.copy2(source, dest)

    return dest

def touch_path(source: str, date, suffix=False, include_time=False):
    """
    Renames a file so it carries the given date, replacing any stamp it
    already has. Returns (path, renamed).
    """
    require_source(source)

    parent, name = split_path(source)
    stripped, _ = extract_stamp(name)
    extension, base_name = split_filename(stripped)
    dest = os.path.join(parent, compose_stamped_name(date, base_name, extension, suffix, include_time))

    if dest == os.path.join(parent, name):
        return dest, False

    require_free(dest)
    os.rename(source, dest)
    return dest, True


def main():
    """Parses arguments and runs a single datefile command."""
    parser = argparse.ArgumentParser(
        description="Create, archive, back up or re-stamp files named after today's date.",
        usage="%(prog)s {create|archive|backup|touch} [-stv] [-z | -j | -J | --zstd] file"
    )
    parser.add_argument('-V', '--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('-s', '--suffix', action='store_true', help='put the stamp after the name instead of before it')
    parser.add_argument('-t', '--time', action='store_true', help='add the time of day to the stamp')
    parser.add_argument('-v', '--verbose', action='store_true', help='explain what is being done')

    # Only meaningful for 'archive'
    parser.add_argument('-z', '--gzip', action='store_true', help='compress the archive with gzip')
    parser.add_argument('-j', '--bzip2', action='store_true', help='compress the archive with bzip2')
    parser.add_argument('-J', '--xz', action='store_true', help='compress the archive with xz')
    parser.add_argument('--zstd', action='store_true', help='compress the archive with zstd')

    parser.add_argument('command', choices=COMMANDS, help='what to do with the file')
    parser.add_argument('file', nargs='?', default='', help='the file or directory to work on')

    args = parser.parse_args()
    program_name = os.path.basename(sys.argv[0])

    # The clock is read once so every name in this run agrees.
    now = datetime.now()

    try:
        compression = select_compression(args.gzip, args.bzip2, args.xz, args.zstd)
        if compression != 'none' and args.command != 'archive':
            raise InvalidInput(f"--{compression} only applies to archive")

        if args.command == 'create':
            filename, created = create_file(args.file, now, args.suffix, args.time)
            if created:
                print(f"File {filename} was created.")
            else:
                print(f"File {filename} already exists.")

        elif args.command == 'archive':
            dest = archive_path(args.file, now, args.suffix, args.time, compression)
            if args.verbose:
                print(f"'{args.file}' -> '{dest}'")

        elif args.command == 'backup':
            dest = backup_path(args.file, now, args.suffix, args.time)
            if args.verbose:
                print(f"'{args.file}' -> '{dest}'")

        elif args.command == 'touch':
            dest, renamed = touch_path(args.file, now, args.suffix, args.time)
            if args.verbose:
                if renamed:
                    print(f"renamed '{args.file}' -> '{dest}'")
                else:
                    print(f"'{dest}' is already up to date")

    except InvalidInput as e:
        print(f"{program_name}: {e}", file=sys.stderr)
        print(f"Try '{program_name} --help' for more information.", file=sys.stderr)
        sys.exit(1)
    except ExternalCommandError as e:
        print(f"{program_name}: {e}", file=sys.stderr)
        sys.exit(1)
    except OSError as e:
        # Our own messages are the single argument; system errors carry strerror.
        message = e.strerror if e.strerror else e
        if e.filename:
            message = f"'{e.filename}': {message}"
        print(f"{program_name}: {message}", file=sys.stderr)
        sys.exit(1)

    sys.exit(0)

if __name__ == "__main__":
    main()
