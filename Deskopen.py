#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# Copyright (C) 2009-2016  Xyne
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# (version 2) as published by the Free Software Foundation.
#
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301, USA.

'''
Deskopen resolves the application that should handle a file, URL or MIME-type
and builds the command line to launch it. It follows the freedesktop.org
specifications:

    http://standards.freedesktop.org/mime-apps-spec/mime-apps-spec-latest.html
    http://standards.freedesktop.org/shared-mime-info-spec/shared-mime-info-spec-latest.html
    http://standards.freedesktop.org/basedir-spec/basedir-spec-latest.html
    http://standards.freedesktop.org/desktop-entry-spec/desktop-entry-spec-latest.html

Internally Deskopen uses pyxdg for the base directories and the shared MIME
database:

    http://freedesktop.org/wiki/Software/pyxdg/

Handlers are looked up in this order:

  1. the user's default applications for the exact MIME-type
  2. the user's default applications for the "type/*" wildcard
  3. the user's added associations for the exact MIME-type
  4. the first desktop entry that declares the MIME-type

The user's mimeapps.list is not locked. Concurrent invocations that modify it
race and the last writer wins.
'''

import argparse
import collections
import concurrent.futures
import glob
import json
import logging
import mimetypes
import os
import re
import shlex
import shutil
import socket
import stat
import subprocess
import sys
import tempfile
import urllib.parse

import xdg.BaseDirectory
import xdg.Mime



################################### Globals ####################################

NAME = 'Deskopen'
DESKOPEN_DEFAULT_ARGUMENTS_FILE = 'default_arguments.txt'
DESKOPEN_ASSOCIATIONS_FILE = 'associations.txt'

# Files and paths
MIMEAPPS_LIST_FILE = 'mimeapps.list'
APP_DIR = 'applications'
DESKTOP_EXTENSION = '.desktop'

# File sections
ADDED_ASSOCIATIONS_SECTION = 'Added Associations'
DEFAULT_APPLICATIONS_SECTION = 'Default Applications'
DESKTOP_ENTRY_SECTION = 'Desktop Entry'

# Executables
EXE_NOTIFY_SEND = 'notify-send'
NOTIFY_TIMEOUT = '10000'

# URL scheme
SCHEME_FILE = 'file'

# MIME-types
MIMETYPE_SCHEME_PREFIX = 'x-scheme-handler/'
MIMETYPE_SCHEME_FMT = MIMETYPE_SCHEME_PREFIX + '{}'
MIMETYPE_WILDCARD = '*'
MIMETYPE_OCTET_STREAM = 'application/octet-stream'
MIMETYPE_TEXT = 'text/plain'

# http://standards.freedesktop.org/shared-mime-info-spec/shared-mime-info-spec-latest.html#idm140625828597376
MIMETYPE_BLOCKDEVICE= 'inode/blockdevice'
MIMETYPE_CHARDEVICE = 'inode/chardevice'
MIMETYPE_DIRECTORY = 'inode/directory'
MIMETYPE_FIFO = 'inode/fifo'
MIMETYPE_MOUNT_POINT = 'inode/mount-point'
MIMETYPE_SOCKET = 'inode/socket'
MIMETYPE_SYMLINK = 'inode/symlink'

# MIME-types that are accepted from the user without being in any database.
SYNTHETIC_MIMETYPES = (
  MIMETYPE_BLOCKDEVICE,
  MIMETYPE_CHARDEVICE,
  MIMETYPE_DIRECTORY,
  MIMETYPE_FIFO,
  MIMETYPE_MOUNT_POINT,
  MIMETYPE_SOCKET,
  MIMETYPE_SYMLINK,
  MIMETYPE_SCHEME_FMT.format('http'),
  MIMETYPE_SCHEME_FMT.format('https'),
)

MIMETYPES_KNOWNFILES_REGEX = re.compile(r'^\s*([^#\s]\S+\/\S+)')

# Maximum number of bytes read when guessing a MIME-type from file contents.
SNIFF_SIZE = 1024

# Desktop files
FIELD_CODES = ('%f', '%F', '%u', '%U')
MULTIPLE_FIELD_CODES = ('%F', '%U')
FIELD_CODE_REGEX = re.compile(r'%[fFuU]')

TERM_COMMAND_PLACEHOLDER = '%s'
DEFAULT_TERM_CMD = 'xterm -e'
DEFAULT_SELECTOR_CMD = 'rofi -dmenu'

# Execution modes. Files are opened one per invocation unless the Exec field
# accepts several. Launching always passes all arguments to one invocation.
MODE_OPEN = 'open'
MODE_LAUNCH = 'launch'



#################################### Errors ####################################

class DeskopenError(Exception):
  '''
  Base class of all errors raised by Deskopen.
  '''
  pass



class Ambiguous(DeskopenError):
  def __init__(self, arg):
    self.arg = arg
    super().__init__('could not determine the MIME-type of {}'.format(arg))



class BadMime(DeskopenError):
  def __init__(self, mimetype):
    self.mimetype = mimetype
    super().__init__('invalid MIME-type: {}'.format(mimetype))



class NotFound(DeskopenError):
  def __init__(self, what):
    self.what = what
    super().__init__('no handler found for {}'.format(what))



class BadEntry(DeskopenError):
  def __init__(self, path, reason=None):
    self.path = path
    self.reason = reason
    msg = 'malformed desktop entry: {}'.format(path)
    if reason:
      msg += ' ({})'.format(reason)
    super().__init__(msg)



class BadCmd(DeskopenError):
  def __init__(self, exe, reason=None):
    self.exe = exe
    self.reason = reason
    msg = 'invalid command: {}'.format(exe)
    if reason:
      msg += ' ({})'.format(reason)
    super().__init__(msg)



class Cancelled(DeskopenError):
  def __init__(self):
    super().__init__('selection cancelled')



class ExecError(DeskopenError):
  '''
  One or more commands could not be started. Each failure is a tuple of the
  command and the OSError that it raised.
  '''
  def __init__(self, failures):
    self.failures = list(failures)
    super().__init__('failed to run {}'.format(
      ', '.join(
        '{} [{}]'.format(quote_cmd(cmd), e.strerror or e)
        for cmd, e in self.failures
      )
    ))



class ParseError(DeskopenError):
  def __init__(self, msg, path=None, lineno=None):
    self.msg = msg
    self.path = path
    self.lineno = lineno
    super().__init__(msg)

  def __str__(self):
    location = self.path if self.path else '<input>'
    if self.lineno:
      location += ':{:d}'.format(self.lineno)
    return '{}: {}'.format(location, self.msg)



############################### Config Functions ###############################

def default_associations_paths():
  '''
  Paths to check for custom Deskopen associations.
  '''
  for dpath in xdg.BaseDirectory.xdg_config_dirs:
    yield os.path.join(
      dpath,
      NAME.lower(),
      DESKOPEN_ASSOCIATIONS_FILE
    )



def default_arguments_path():
  '''
  The path to a plaintext file containing shell-parsable arguments to add to
  Deskopen before argument parsing.
  '''
  return os.path.join(
    xdg.BaseDirectory.xdg_config_home,
    NAME.lower(),
    DESKOPEN_DEFAULT_ARGUMENTS_FILE
  )



def default_arguments():
  '''
  Load default arguments from default_arguments_path().
  '''
  path = default_arguments_path()
  logging.debug('loading arguments from {}'.format(path))
  try:
    with open(path, 'r') as f:
      return shlex.split(f.readline())
  except FileNotFoundError:
    return None



def user_mimeapps_path():
  '''
  Get the user's association file.
  '''
  return os.path.join(xdg.BaseDirectory.xdg_config_home, MIMEAPPS_LIST_FILE)



def desktop_directories():
  '''
  Iterate over desktop entry directories in order of precedence.
  '''
  my_name = 'desktop_directories'
  data_home = xdg.BaseDirectory.xdg_data_home

  yield from logging_debug_and_yield(
    my_name,
    (os.path.join(data_home, APP_DIR),)
  )

  yield from logging_debug_and_yield(
    my_name,
    (
      os.path.join(d, APP_DIR)
      for d in xdg.BaseDirectory.xdg_data_dirs
      if d != data_home
    )
  )



################################## Debugging ###################################

def logging_debug_and_yield(msg, lst):
  '''
  Pretty-print a debugging message followed by a list of arguments. This is an
  iterator so that it can be used to log lists with "yield from" without
  building an intermediate list or tuple.
  '''
  for item in lst:
    logging.debug('{}: {}'.format(msg, item))
    yield item



############################## Generic Functions ###############################

def quote_cmd(cmd):
  '''
  Quote a command for shell parsing (used for command-line output).
  '''
  return ' '.join(shlex.quote(w) for w in cmd)



def is_attached():
  '''
  True if standard output is a terminal.
  '''
  try:
    return sys.stdout.isatty()
  except (AttributeError, ValueError):
    return False



def run_cmd(cmd, terminal=False):
  '''
  Start a command. Commands that do not need a terminal are detached from this
  process and their output is discarded. Commands that need a terminal inherit
  the standard streams and are waited for if this process runs in a terminal.
  '''
  logging.debug(quote_cmd(cmd))
  if not terminal:
    subprocess.Popen(
      cmd,
      close_fds=True,
      start_new_session=True,
      stdin=subprocess.DEVNULL,
      stdout=subprocess.DEVNULL,
      stderr=subprocess.DEVNULL,
    )
  elif is_attached():
    cp = subprocess.run(cmd)
    if cp.returncode:
      logging.debug('{} exited with status {:d}'.format(cmd[0], cp.returncode))
  else:
    subprocess.Popen(cmd, close_fds=True, start_new_session=True)



def notify(title, msg):
  '''
  Display a desktop notification. Failures are only logged.
  '''
  cmd = [EXE_NOTIFY_SEND, '-t', NOTIFY_TIMEOUT, title, msg]
  logging.debug(quote_cmd(cmd))
  try:
    subprocess.Popen(
      cmd,
      close_fds=True,
      stdout=subprocess.DEVNULL,
      stderr=subprocess.DEVNULL,
    )
  except OSError as e:
    logging.warning('failed to send notification: {}'.format(e))



def interpolate_term_cmd(term_cmd, app_cmd):
  '''
  Interpolate a terminal command, given as a single string, with the given
  application command. If the terminal command does not contain the
  placeholder then the application command is appended to it.
  '''
  seen = False
  app_cmd_word = quote_cmd(app_cmd)
  try:
    words = shlex.split(term_cmd)
  except ValueError as e:
    raise BadCmd(term_cmd, e) from None
  for word in words:
    if word == TERM_COMMAND_PLACEHOLDER:
      seen = True
      yield from app_cmd
    elif word == '\'{}\''.format(TERM_COMMAND_PLACEHOLDER):
      seen = True
      yield app_cmd_word
    else:
      iword = ''
      escaped = False
      for c in word:
        if escaped:
          if c == TERM_COMMAND_PLACEHOLDER[1]:
            seen = True
            iword += app_cmd_word
          else:
            iword += c
          escaped = False
        elif c == TERM_COMMAND_PLACEHOLDER[0]:
          escaped = True
          continue
        else:
          iword += c
      yield iword
  if not seen:
    yield from app_cmd



def unique_items(f):
  '''
  Function decorator to remove duplicates from iterable functions.
  '''
  def g(*args, **kwargs):
    seen = set()
    for x in f(*args, **kwargs):
      if x in seen:
        continue
      else:
        yield x
        seen.add(x)
  return g



def ensure_path(arg):
  '''
  Ensure that the argument is a path. If it is a URL, only the path part will
  be returned.
  '''
  parsed_url = urllib.parse.urlparse(arg)
  # Not a URL. Return the argument directly.
  if not (parsed_url.scheme or parsed_url.netloc):
    return arg

  # "file" URL on localhost
  if parsed_url.scheme == SCHEME_FILE:
    # Keep this here to avoid getfqdn calls for non-"file" URLs, which have been
    # reported to be slow on some systems.
    hostname = parsed_url.hostname
    if not hostname or hostname == 'localhost':
      return urllib.parse.unquote(parsed_url.path)
    localhost = socket.getfqdn(socket.gethostname())
    if socket.getfqdn(hostname) == localhost:
      return urllib.parse.unquote(parsed_url.path)

  return None



def ensure_desktop_name(arg):
  '''
  Strip directory components and add the desktop extension if it is missing.
  '''
  arg = os.path.basename(arg)
  return arg if arg.endswith(DESKTOP_EXTENSION) else arg + DESKTOP_EXTENSION



def split_list(value):
  '''
  Split a semicolon-separated desktop entry list. The trailing separator is
  optional.
  '''
  return list(x.strip() for x in value.split(';') if x.strip())



def collect_b_by_a(itr, unique_b=True):
  '''
  Iterate over a list of 2-tuples and accumulate the second item into a
  dictionary with the first item as the key.
  '''
  b_by_a = collections.OrderedDict()
  for a, b in itr:
    try:
      if not unique_b or b not in b_by_a[a]:
        b_by_a[a].append(b)
    except KeyError:
      b_by_a[a] = [b]
  return b_by_a



def print_collection(a_by_b, order=None, sort_a=False, sort_b=False):
  '''
  Print a collection to STDOUT.
  '''
  if not order:
    if sort_a:
      order = sorted(a_by_b)
    else:
      order = a_by_b.keys()

  for a in order:
    print(a)
    try:
      bs = a_by_b[a]
    except KeyError:
      continue
    else:
      if sort_b:
        bs = sorted(bs)
      for b in bs:
        print('  {}'.format(b))



################################ Atomic Writes #################################

def fsync_dir(dpath):
  '''
  Flush the metadata of a directory to disk.
  '''
  fd = os.open(dpath, os.O_RDONLY)
  try:
    os.fsync(fd)
  finally:
    os.close(fd)



def atomic_write(path, writer, sync_dir=False):
  '''
  Replace a file atomically. The writer is called with a text file object for
  a temporary file in a scratch directory next to the target. The temporary
  file is synced and then renamed over the target so that the target always
  contains either its old or its new contents. If sync_dir is True then the
  target directory is also synced so that the new contents survive a power
  loss. The scratch directory is removed in all cases.

  Symlinks are followed so that the file they point to is replaced instead of
  the link.
  '''
  path = os.path.realpath(path)
  dpath = os.path.dirname(path)
  tmpdir = tempfile.mkdtemp(prefix='.atomicwrite', dir=dpath)
  try:
    tmppath = os.path.join(tmpdir, 'tmpfile.tmp')
    with open(tmppath, 'w', encoding='utf-8') as f:
      writer(f)
      f.flush()
      os.fsync(f.fileno())
    logging.debug('replacing {}'.format(path))
    os.replace(tmppath, path)
    if sync_dir:
      fsync_dir(dpath)
  finally:
    shutil.rmtree(tmpdir, ignore_errors=True)



################################# INI Parsing ##################################

def iterate_ini(lines):
  '''
  Iterate over the properties of an INI-style file. Each item is a tuple
  containing the line number, the current section (None before the first
  header), the key and the value. ParseError is raised for lines that are
  neither comments, section headers nor properties.
  '''
  section = None
  for lineno, line in enumerate(lines, 1):
    line = line.strip()
    if not line or line[0] == '#':
      continue
    elif line[0] == '[':
      if line[-1] != ']':
        raise ParseError('unterminated section header', lineno=lineno)
      section = line[1:-1]
    else:
      try:
        key, value = line.split('=', 1)
      except ValueError:
        raise ParseError(
          'failed to parse line [{}]'.format(line), lineno=lineno
        ) from None
      yield lineno, section, key.strip(), value.strip()



################################## MIME-types ##################################

def check_mimetype(mimetype):
  '''
  Check that a string has the form "type/subtype" and return it unchanged.
  BadMime is raised otherwise.
  '''
  try:
    type_name, subtype_name = mimetype.split('/')
  except ValueError:
    raise BadMime(mimetype) from None
  if not type_name or not subtype_name \
  or any(c.isspace() for c in mimetype):
    raise BadMime(mimetype)
  return mimetype



def is_wildcard(mimetype):
  return mimetype.endswith('/' + MIMETYPE_WILDCARD)



def wildcard_mimetype(mimetype):
  '''
  Return the "type/*" wildcard that covers the given MIME-type, or None if the
  MIME-type is already a wildcard.
  '''
  if is_wildcard(mimetype):
    return None
  type_name = mimetype.split('/', 1)[0]
  return '{}/{}'.format(type_name, MIMETYPE_WILDCARD)



def verify_mimetype(mimetype, known):
  '''
  Verify a MIME-type given by the user. Scheme handlers and the synthetic
  MIME-types are always accepted. Other MIME-types must be known, and a
  wildcard must cover at least one known MIME-type.
  '''
  check_mimetype(mimetype)
  if mimetype.startswith(MIMETYPE_SCHEME_PREFIX) \
  or mimetype in SYNTHETIC_MIMETYPES \
  or mimetype in known:
    return mimetype
  if is_wildcard(mimetype):
    prefix = mimetype[:-len(MIMETYPE_WILDCARD)]
    if any(m.startswith(prefix) for m in known):
      return mimetype
  raise BadMime(mimetype)



def mimetypes_knownfiles():
  '''
  The mime.types files read by the mimetypes module, user file first.
  '''
  return [os.path.expanduser('~/.mime.types')] + mimetypes.knownfiles



def knownfiles_mimetypes(paths):
  '''
  Iterate over the MIME-types listed in mime.types files.
  '''
  for path in paths:
    try:
      with open(path, 'r', errors='replace') as f:
        logging.debug('loading MIME-types from {}'.format(path))
        for line in f:
          m = MIMETYPES_KNOWNFILES_REGEX.search(line)
          if m:
            yield m.group(1)
    except OSError as e:
      logging.debug('skipping {}: {}'.format(path, e))



def mimetype_from_name(path):
  '''
  Attempt to determine the MIME-type of a file by name.
  '''
  mimetype = None
  mt = xdg.Mime.get_type_by_name(path)
  if mt:
    mimetype = '{}/{}'.format(mt.media, mt.subtype)
  if not mimetype:
    mimetype = mimetypes.guess_type(path)[0]
  return mimetype



def mimetype_from_contents(path):
  '''
  Attempt to determine the MIME-type of a regular (existing) file from the
  start of its contents.
  '''
  try:
    with open(path, 'rb') as f:
      data = f.read(SNIFF_SIZE)
  except OSError as e:
    logging.warning('failed to read {}: {}'.format(path, e))
    return None
  mt = xdg.Mime.get_type_by_data(data)
  if mt:
    return '{}/{}'.format(mt.media, mt.subtype)
  if data and xdg.Mime.is_text_file(path, bufsize=SNIFF_SIZE):
    return MIMETYPE_TEXT
  return None



def mimetype_from_path(path, follow_symlinks=True):
  '''
  Attempt to determine the MIME-type of a path. Files that do not exist are
  matched by name only.
  '''
  try:
    if follow_symlinks:
      st = os.stat(path)
    else:
      st = os.lstat(path)
  except FileNotFoundError:
    return mimetype_from_name(path)
  except PermissionError as e:
    logging.error('mimetype_from_path: [{}]'.format(e))
    return mimetype_from_name(path)

  mode = st.st_mode
  if stat.S_ISBLK(mode):
    return MIMETYPE_BLOCKDEVICE
  elif stat.S_ISCHR(mode):
    return MIMETYPE_CHARDEVICE
  elif stat.S_ISDIR(mode):
    return MIMETYPE_DIRECTORY
  elif stat.S_ISFIFO(mode):
    return MIMETYPE_FIFO
  elif stat.S_ISSOCK(mode):
    return MIMETYPE_SOCKET
  elif stat.S_ISLNK(mode):
    return MIMETYPE_SYMLINK
  elif stat.S_ISREG(mode):
    mimetype = mimetype_from_name(path)
    if not mimetype or mimetype == MIMETYPE_OCTET_STREAM:
      logging.debug('checking contents of {}'.format(path))
      mimetype = mimetype_from_contents(path)
    return mimetype
  else:
    logging.error('mimetype_from_path: unsupported mode [{}]'.format(mode))
    return None



def extension_mimetype(extension):
  '''
  Look up the MIME-type of a file extension such as ".pdf".
  '''
  mimetype = mimetype_from_name('file' + extension)
  if not mimetype or mimetype == MIMETYPE_OCTET_STREAM:
    raise Ambiguous(extension)
  return mimetype



def is_extension(arg):
  '''
  True if the argument looks like a bare extension rather than a path.
  '''
  return len(arg) > 1 \
  and arg[0] == '.' \
  and os.sep not in arg \
  and not os.path.lexists(arg)



def classify(arg, follow_symlinks=True):
  '''
  Determine the MIME-type of a path, URL or bare extension. URLs other than
  "file" URLs map to a scheme handler MIME-type. Ambiguous is raised if the
  MIME-type cannot be determined.
  '''
  parsed_url = urllib.parse.urlparse(arg)
  scheme = parsed_url.scheme
  # Single letters are drive letters, not schemes.
  if len(scheme) > 1 and scheme != SCHEME_FILE:
    return MIMETYPE_SCHEME_FMT.format(scheme)

  if scheme == SCHEME_FILE:
    path = ensure_path(arg)
    if not path:
      raise Ambiguous(arg)
  elif is_extension(arg):
    return extension_mimetype(arg)
  else:
    path = arg

  mimetype = mimetype_from_path(path, follow_symlinks=follow_symlinks)
  if not mimetype or mimetype == MIMETYPE_OCTET_STREAM:
    raise Ambiguous(arg)
  return mimetype



################################ Desktop files #################################

def exec_field_to_cmd(exe, args):
  '''
  Interpolate a Desktop Entry Exec field. A word that is a field code is
  replaced by all of the arguments. A field code within a word is replaced by
  the arguments joined with spaces.
  '''
  try:
    words = shlex.split(exe)
  except ValueError as e:
    raise BadCmd(exe, e) from None

  joined = ' '.join(args)
  cmd = list()
  for word in words:
    if word in FIELD_CODES:
      cmd.extend(args)
    elif FIELD_CODE_REGEX.search(word):
      cmd.append(FIELD_CODE_REGEX.sub(lambda m: joined, word))
    else:
      cmd.append(word)
  if not cmd:
    raise BadCmd(exe, 'empty command')
  return cmd



class Invocable(object):
  '''
  Base class for handlers that are run by interpolating an Exec-style command
  template. Subclasses set "name", "exec" and "terminal".
  '''
  name = ''
  exec = ''
  terminal = False

  def supports_multiple(self):
    '''
    True if the command accepts several files or URLs at once.
    '''
    return any(c in self.exec for c in MULTIPLE_FIELD_CODES)



  def get_cmd(self, args=None, term_cmd=None):
    '''
    Interpolate the command template with the arguments and return a tuple of
    the executable and its arguments. Commands that need a terminal are wrapped
    in the terminal command if this process is not running in a terminal.
    '''
    cmd = exec_field_to_cmd(self.exec, list(args) if args else [])
    if self.terminal and term_cmd and not is_attached():
      cmd = list(interpolate_term_cmd(term_cmd, cmd))
    return cmd[0], cmd[1:]



  def build_commands(self, mode, args=None, term_cmd=None):
    '''
    Return the full commands needed to handle the arguments.
    '''
    args = list(args) if args else []
    if not args or mode == MODE_LAUNCH or self.supports_multiple():
      argss = (args,)
    else:
      argss = ([a] for a in args)
    commands = list()
    for aa in argss:
      exe, argv = self.get_cmd(aa, term_cmd=term_cmd)
      commands.append([exe] + argv)
    return commands



  def execute(self, mode, args=None, term_cmd=None):
    '''
    Run the commands for the arguments. Every command is attempted and
    ExecError is raised at the end if any of them failed to start.
    '''
    failures = list()
    for cmd in self.build_commands(mode, args, term_cmd=term_cmd):
      try:
        run_cmd(cmd, terminal=self.terminal)
      except OSError as e:
        logging.error('failed to run {}: {}'.format(quote_cmd(cmd), e))
        failures.append((cmd, e))
    if failures:
      raise ExecError(failures)



class DesktopEntry(Invocable):
  '''
  The fields of a desktop entry that are used to open files.
  '''
  def __init__(
    self,
    filename,
    name,
    exe,
    terminal=False,
    mimetypes=None,
    categories=None
  ):
    self.filename = filename
    self.name = name
    self.exec = exe
    self.terminal = terminal
    self.mimetypes = list(mimetypes) if mimetypes else []
    self.categories = frozenset(categories) if categories else frozenset()



  def __repr__(self):
    return '{}({!r}, {!r}, {!r})'.format(
      self.__class__.__name__, self.filename, self.name, self.exec
    )



  @classmethod
  def parse(cls, path):
    '''
    Parse the "Desktop Entry" section of a desktop file. The first non-empty
    Name is used while later Exec and Terminal keys override earlier ones.
    BadEntry is raised if the file cannot be read or lacks a Name or Exec.
    '''
    name = None
    exe = None
    terminal = False
    mimes = list()
    categories = set()
    logging.debug('parsing {}'.format(path))
    try:
      with open(path, 'r', encoding='utf-8') as f:
        for _, section, key, value in iterate_ini(f):
          if section != DESKTOP_ENTRY_SECTION or not value:
            continue
          elif key == 'Name':
            if not name:
              name = value
          elif key == 'Exec':
            exe = value
          elif key == 'Terminal':
            terminal = (value == 'true')
          elif key == 'MimeType':
            mimes = list(valid_mimetypes(split_list(value)))
          elif key == 'Categories':
            categories = set(split_list(value))
    except (OSError, UnicodeDecodeError, ParseError) as e:
      raise BadEntry(path, e) from None

    if not name or not exe:
      raise BadEntry(path, 'Name and Exec are required')
    return cls(
      os.path.basename(path),
      name,
      exe,
      terminal=terminal,
      mimetypes=mimes,
      categories=categories,
    )



@unique_items
def valid_mimetypes(mimes):
  for m in mimes:
    try:
      yield check_mimetype(m)
    except BadMime:
      logging.debug('ignoring invalid MIME-type [{}]'.format(m))



def try_parse_desktop_entry(path):
  '''
  Parse a desktop entry or return None if it is malformed.
  '''
  try:
    return DesktopEntry.parse(path)
  except BadEntry as e:
    logging.debug('skipping {}'.format(e))
    return None



################################ Regex handlers ################################

class RegexHandler(Invocable):
  '''
  A custom command associated with regular expressions that are matched
  against the raw arguments.
  '''
  def __init__(self, exe, regexes=None):
    self.name = exe
    self.exec = exe
    self.regexes = list(regexes) if regexes else []



  def __repr__(self):
    return '{}({!r})'.format(self.__class__.__name__, self.exec)



  def matches(self, arg):
    return any(regex.search(arg) for regex in self.regexes)



def parse_regex_handlers(lines):
  '''
  Parse a Deskopen associations file. Commands are given on their own lines
  and are followed by regular expressions indented by exactly two spaces.
  '''
  handlers = list()
  handler = None
  for line in lines:
    line = line.rstrip()
    if not line or line[0] == '#':
      continue
    elif line.startswith('  '):
      if handler:
        try:
          handler.regexes.append(re.compile(line[2:]))
        except re.error as e:
          logging.warning('invalid regular expression [{}]: {}'.format(line[2:], e))
    else:
      handler = RegexHandler(line)
      handlers.append(handler)
  return list(h for h in handlers if h.regexes)



def load_regex_handlers(path):
  '''
  Load a Deskopen associations file. FileNotFoundError propagates.
  '''
  with open(path, 'r') as f:
    logging.debug('loading {}'.format(path))
    return parse_regex_handlers(f)



def load_default_regex_handlers():
  '''
  Load the first Deskopen associations file found in the default locations.
  '''
  for path in default_associations_paths():
    try:
      return load_regex_handlers(path)
    except FileNotFoundError:
      logging.debug('{} does not exist'.format(path))
  return []



################################ System Catalog ################################

class SystemCatalog(object):
  '''
  Installed desktop entries indexed by the MIME-types that they declare. The
  directories are given in order of precedence. A desktop file hides files
  with the same name in later directories.
  '''
  def __init__(self, directories, max_workers=None):
    self.directories = list(directories)
    self.max_workers = max_workers
    self.paths = collections.OrderedDict()
    self.handlers = collections.OrderedDict()
    self.populate()



  def desktop_paths(self):
    '''
    Iterate over all desktop files.
    '''
    for dpath in self.directories:
      pattern = os.path.join(glob.escape(dpath), '*' + DESKTOP_EXTENSION)
      yield from sorted(glob.iglob(pattern))



  def populate(self):
    '''
    Scan the directories. The desktop files are parsed in a thread pool and
    unparsable files are skipped.
    '''
    self.paths.clear()
    self.handlers.clear()
    for path in self.desktop_paths():
      name = os.path.basename(path)
      if name in self.paths:
        logging.debug('{} is hidden by {}'.format(path, self.paths[name]))
      else:
        self.paths[name] = path

    with concurrent.futures.ThreadPoolExecutor(
      max_workers=self.max_workers
    ) as executor:
      entries = executor.map(try_parse_desktop_entry, self.paths.values())
      for entry in entries:
        if entry is None:
          continue
        for m in entry.mimetypes:
          handlers = self.handlers.setdefault(m, list())
          if entry.filename not in handlers:
            handlers.append(entry.filename)



  def find(self, name):
    '''
    Return the path to the named desktop file, or None.
    '''
    return self.paths.get(name)



  def names(self):
    return sorted(self.paths)



  def get_handlers(self, mimetype):
    return list(self.handlers.get(mimetype, ()))



  def get_handler(self, mimetype):
    '''
    Return the default system handler for the MIME-type, or None.
    '''
    try:
      return self.handlers[mimetype][0]
    except (KeyError, IndexError):
      return None



  def mimetypes(self):
    return self.handlers.keys()



############################ mimeapps.list handling ############################

@unique_items
def handler_ids(value, is_valid=None):
  '''
  Iterate over the desktop file names in an association value.
  '''
  for d in value.split(';'):
    # The standard only supports desktop file names. Strip directory
    # components from the path to ensure this.
    d = os.path.basename(d.strip())
    if not d:
      continue
    elif is_valid and not is_valid(d):
      logging.debug('ignoring invalid handler [{}]'.format(d))
    else:
      yield d



class UserAssociations(object):
  '''
  The "Added Associations" and "Default Applications" sections of the user's
  mimeapps.list. Each maps MIME-types to lists of desktop file names. The
  first default application is the active one.
  '''
  def __init__(self, added=None, default=None):
    self.added = collections.OrderedDict(added if added else ())
    self.default = collections.OrderedDict(default if default else ())
    self.modified = False



  def sections(self):
    return (
      (ADDED_ASSOCIATIONS_SECTION, self.added),
      (DEFAULT_APPLICATIONS_SECTION, self.default),
    )



  @classmethod
  def parse(cls, lines, is_valid=None):
    '''
    Parse lines of an association file. Unknown sections and invalid
    MIME-types are ignored. Handlers rejected by is_valid are dropped.
    '''
    assocs = cls()
    sections = dict(assocs.sections())
    for lineno, section, key, value in iterate_ini(lines):
      try:
        entries = sections[section]
      except KeyError:
        continue
      try:
        check_mimetype(key)
      except BadMime:
        logging.debug('line {:d}: ignoring invalid MIME-type [{}]'.format(lineno, key))
        continue
      handlers = list(handler_ids(value, is_valid=is_valid))
      # A line without valid handlers leaves earlier lines for the key alone.
      if handlers:
        entries[key] = handlers
    return assocs



  @classmethod
  def load(cls, path, is_valid=None):
    '''
    Load an association file. A missing file yields empty associations while
    a malformed file raises ParseError.
    '''
    try:
      with open(path, 'r', encoding='utf-8') as f:
        logging.debug('loading {}'.format(path))
        return cls.parse(f, is_valid=is_valid)
    except FileNotFoundError:
      logging.debug('{} does not exist'.format(path))
      return cls()
    except UnicodeDecodeError as e:
      raise ParseError(str(e), path=path) from None
    except ParseError as e:
      e.path = path
      raise



  def dump(self, f):
    '''
    Write the associations to a file object. Both sections are always written
    and the MIME-types are sorted.
    '''
    for i, (section, entries) in enumerate(self.sections()):
      # Separate sections with an empty line.
      if i:
        f.write('\n')
      f.write('[{}]\n'.format(section))
      for key, values in sorted(entries.items()):
        if values:
          f.write('{}={};\n'.format(key, ';'.join(values)))



  def save(self, path, sync_dir=False):
    '''
    Save associations to a file.
    '''
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    logging.debug('saving {}'.format(path))
    atomic_write(path, self.dump, sync_dir=sync_dir)
    self.modified = False



  def set_default(self, mimetype, handler):
    self.default[mimetype] = [handler]
    self.modified = True



  def add_default(self, mimetype, handler):
    handlers = self.default.setdefault(mimetype, list())
    if handler not in handlers:
      handlers.append(handler)
      self.modified = True



  def remove_default(self, mimetype):
    try:
      del self.default[mimetype]
    except KeyError:
      return False
    self.modified = True
    return True



############################### Handler Selection ##############################

class Selector(object):
  '''
  Let the user pick a handler with an external menu command such as dmenu or
  rofi. The choices are passed on STDIN, one per line, and the choice is read
  from STDOUT.
  '''
  def __init__(self, cmd=DEFAULT_SELECTOR_CMD):
    self.cmd = cmd



  def select(self, names):
    try:
      cmd = shlex.split(self.cmd)
    except ValueError as e:
      raise BadCmd(self.cmd, e) from None
    logging.debug(quote_cmd(cmd))
    cp = subprocess.run(
      cmd,
      input='\n'.join(names),
      stdout=subprocess.PIPE,
      universal_newlines=True,
    )
    choice = cp.stdout.rstrip() if cp.stdout else ''
    if not choice:
      raise Cancelled()
    return choice



class Resolver(object):
  '''
  Resolve MIME-types to handlers. describe maps handler names to display
  names for the selector.
  '''
  def __init__(self, associations, catalog, describe=None, selector=None):
    self.associations = associations
    self.catalog = catalog
    self.describe = describe if describe else (lambda handler: handler)
    self.selector = selector



  def select(self, handlers):
    '''
    Return the first handler, or ask the selector if it is enabled and there
    is more than one.
    '''
    if len(handlers) < 2 or not self.selector:
      return handlers[0]
    by_name = collections.OrderedDict()
    for h in handlers:
      by_name.setdefault(self.describe(h), h)
    choice = self.selector.select(by_name)
    try:
      return by_name[choice]
    except KeyError:
      logging.warning('unrecognized selection [{}]'.format(choice))
      raise Cancelled() from None



  def get_handler(self, mimetype):
    '''
    Get the handler for a MIME-type. NotFound is raised if there is none.
    '''
    handlers = self.associations.default.get(mimetype)
    if handlers:
      logging.debug('default application for {}'.format(mimetype))
      return self.select(handlers)

    wildcard = wildcard_mimetype(mimetype)
    if wildcard:
      handlers = self.associations.default.get(wildcard)
      if handlers:
        logging.debug('default application for {}'.format(wildcard))
        return self.select(handlers)

    handlers = self.associations.added.get(mimetype)
    if handlers:
      logging.debug('added association for {}'.format(mimetype))
      return handlers[0]

    handler = self.catalog.get_handler(mimetype)
    if handler:
      logging.debug('system handler for {}'.format(mimetype))
      return handler

    raise NotFound(mimetype)



  def set_handler(self, mimetype, handler):
    self.associations.set_default(mimetype, handler)



  def add_handler(self, mimetype, handler):
    self.associations.add_default(mimetype, handler)



  def remove_handler(self, mimetype):
    return self.associations.remove_default(mimetype)



################################### Deskopen ###################################

class Deskopen(object):
  '''
  The state of one invocation: the desktop entries, the user's associations,
  the custom regex handlers and the configuration.
  '''
  def __init__(
    self,
    mimeapps_path=None,
    desktop_dirs=None,
    term_cmd=DEFAULT_TERM_CMD,
    selector_cmd=DEFAULT_SELECTOR_CMD,
    enable_selector=False,
    regex_handlers=None,
    follow=True,
    sync_dir=False,
  ):
    self.mimeapps_path = mimeapps_path if mimeapps_path else user_mimeapps_path()
    if desktop_dirs is None:
      desktop_dirs = desktop_directories()
    self.desktop_dirs = list(desktop_dirs)
    self.term_cmd = term_cmd
    self.regex_handlers = list(regex_handlers) if regex_handlers else []
    self.follow = follow
    self.sync_dir = sync_dir

    self.mimetypes_knownfiles = mimetypes_knownfiles()
    self.seen_mimetypes = set()

    self.catalog = SystemCatalog(self.desktop_dirs)
    self.associations = UserAssociations.load(
      self.mimeapps_path,
      is_valid=self.is_valid_handler
    )
    self.selector = Selector(selector_cmd) if enable_selector else None
    self.resolver = Resolver(
      self.associations,
      self.catalog,
      describe=self.handler_name,
      selector=self.selector,
    )



  def desktop_entry(self, handler):
    '''
    Load the desktop entry of a handler.
    '''
    path = self.catalog.find(handler)
    if not path:
      raise NotFound(handler)
    return DesktopEntry.parse(path)



  def resolve_handler(self, name):
    '''
    Convert a user-supplied desktop file name to a handler. NotFound or
    BadEntry is raised if there is no usable desktop file with that name.
    '''
    handler = ensure_desktop_name(name)
    self.desktop_entry(handler)
    return handler



  def is_valid_handler(self, handler):
    '''
    Check a handler exactly as written. Names without the desktop extension
    are rejected.
    '''
    try:
      self.desktop_entry(handler)
    except DeskopenError as e:
      logging.debug(str(e))
      return False
    return True



  def handler_name(self, handler):
    try:
      return self.desktop_entry(handler).name
    except DeskopenError:
      return handler



  def known_mimetypes(self):
    '''
    Return a set of known MIME-types.
    '''
    if not self.seen_mimetypes:
      self.seen_mimetypes.update(mimetypes.types_map.values())
      self.seen_mimetypes.update(mimetypes.common_types.values())
      self.seen_mimetypes.update(knownfiles_mimetypes(self.mimetypes_knownfiles))
      self.seen_mimetypes.update(self.catalog.mimetypes())
      for _, entries in self.associations.sections():
        self.seen_mimetypes.update(m for m in entries if not is_wildcard(m))
    return self.seen_mimetypes



  def known_extensions(self):
    return sorted(mimetypes.types_map)



  def classify(self, arg):
    return classify(arg, follow_symlinks=self.follow)



  def mime_from_user(self, text):
    '''
    Convert a MIME-type or a bare extension such as ".pdf" given by the user to
    a MIME-type.
    '''
    if text.startswith('.'):
      return extension_mimetype(text)
    return verify_mimetype(text, self.known_mimetypes())



  def get_handler(self, mimetype):
    return self.resolver.get_handler(mimetype)



  def save(self):
    if self.associations.modified:
      self.associations.save(self.mimeapps_path, sync_dir=self.sync_dir)



  def set_handler(self, mimetype, handler):
    self.resolver.set_handler(mimetype, handler)
    self.save()



  def add_handler(self, mimetype, handler):
    self.resolver.add_handler(mimetype, handler)
    self.save()



  def remove_handler(self, mimetype):
    removed = self.resolver.remove_handler(mimetype)
    if removed:
      self.save()
    else:
      logging.debug('no default application for {}'.format(mimetype))
    return removed



  def regex_handler(self, arg):
    '''
    Return the first regex handler that matches the argument, or None.
    '''
    for handler in self.regex_handlers:
      if handler.matches(arg):
        return handler
    return None



  def args_to_invocables(self, args):
    '''
    Group the arguments by the handler that opens them. All arguments are
    resolved before anything is returned.
    '''
    def handlers_and_args():
      for a in args:
        handler = self.regex_handler(a)
        if handler is None:
          handler = self.get_handler(self.classify(a))
        yield handler, a

    args_by_handler = collect_b_by_a(handlers_and_args(), unique_b=False)
    invocables = list()
    for handler, aa in args_by_handler.items():
      if not isinstance(handler, Invocable):
        handler = self.desktop_entry(handler)
      invocables.append((handler, aa))
    return invocables



  def open_commands(self, args):
    for invocable, aa in self.args_to_invocables(args):
      yield from invocable.build_commands(MODE_OPEN, aa, term_cmd=self.term_cmd)



  def open(self, args):
    '''
    Open the arguments with their handlers. A handler that fails to start does
    not prevent the others from running.
    '''
    failures = list()
    for invocable, aa in self.args_to_invocables(args):
      try:
        invocable.execute(MODE_OPEN, aa, term_cmd=self.term_cmd)
      except ExecError as e:
        failures.extend(e.failures)
    if failures:
      raise ExecError(failures)



  def launch_commands(self, mimetype, args):
    entry = self.desktop_entry(self.get_handler(mimetype))
    return entry.build_commands(MODE_LAUNCH, args, term_cmd=self.term_cmd)



  def launch(self, mimetype, args):
    '''
    Run the handler of a MIME-type with the given arguments.
    '''
    entry = self.desktop_entry(self.get_handler(mimetype))
    entry.execute(MODE_LAUNCH, args, term_cmd=self.term_cmd)



  def desktop_names(self):
    '''
    Iterate over the names and display names of all usable desktop entries.
    '''
    for handler in self.catalog.names():
      entry = try_parse_desktop_entry(self.catalog.find(handler))
      if entry:
        yield handler, entry.name



############################### Argument parsing ###############################

def get_argparser():
  parser = argparse.ArgumentParser(
    prog=NAME.lower(),
    description='Open files and URLs with their default applications and manage MIME-type associations.',
    epilog='Additional command-line arguments are read from the first line of {}. Custom regex associations are read from the first existing path among: {}'.format(
      default_arguments_path(),
      ', '.join(default_associations_paths())
    )
  )

  conf_group = parser.add_argument_group(
    'Configuration',
    'Various configuration options. These must precede the command.'
  )

  conf_group.add_argument(
    '-a', '--assoc', metavar='<filepath>',
    help='Specify a file that associates regular expressions with custom commands. Each command is given on its own line and is parsed as a desktop entry "Exec" field. It is followed by regular expressions, each indented by exactly two spaces. Matching arguments are opened with the command by "open".'
  )

  conf_group.add_argument(
    '--no-assoc', dest='use_default_assoc', action='store_false',
    help='Do not use the default associations file.'
  )

  conf_group.add_argument(
    '--no-def-args', dest='use_default_args', action='store_false',
    help='Omit the default arguments.'
  )

  conf_group.add_argument(
    '--term', metavar='<cmd>', default=DEFAULT_TERM_CMD,
    help='Terminal command to use when launching applications with desktop files that specify "Terminal=true" while not running in a terminal. It will be split into words using shlex.split. A word equal to "%%s" will be replaced by the separate words of the application command. Any other instance of "%%s" within a word will be replaced by the joined words of the application command. If "%%s" does not appear then the application command is appended. A literal "%%" may be escaped with "%%%%". Default: "%(default)s".'
  )

  conf_group.add_argument(
    '--selector', metavar='<cmd>', default=DEFAULT_SELECTOR_CMD,
    help='Menu command used to choose among several default applications. Default: "%(default)s".'
  )

  conf_group.add_argument(
    '--enable-selector', action='store_true',
    help='Ask with the selector when a MIME-type has more than one default application.'
  )

  conf_group.add_argument(
    '--sync-dir', action='store_true',
    help='Also sync the configuration directory to disk after saving associations.'
  )

  conf_group.add_argument(
    '--no-follow', action='store_true',
    help='Do not follow symlinks.'
  )

  conf_group.add_argument(
    '--debug', action='store_true',
    help='Enable debugging messages.'
  )

  subparsers = parser.add_subparsers(
    dest='command',
    metavar='<command>',
    title='Commands',
  )
  subparsers.required = True

  list_parser = subparsers.add_parser(
    'list',
    help='List the default applications.'
  )
  list_parser.add_argument(
    '--all', action='store_true',
    help='Also list the added associations.'
  )

  open_parser = subparsers.add_parser(
    'open',
    help='Open paths and URLs with their handlers.'
  )
  open_parser.add_argument(
    '-c', '--command', dest='command_only', action='store_true',
    help='Print the full command(s) and exit.'
  )
  open_parser.add_argument('paths', nargs='+', metavar='<path or URL>')

  get_parser = subparsers.add_parser(
    'get',
    help='Print the handler of a MIME-type or extension.'
  )
  get_parser.add_argument(
    '--json', action='store_true',
    help='Print the handler, its name and its command as JSON.'
  )
  get_parser.add_argument('mime', metavar='<MIME-type or .ext>')

  set_parser = subparsers.add_parser(
    'set',
    help='Set the default handler of a MIME-type or extension.'
  )
  set_parser.add_argument('mime', metavar='<MIME-type or .ext>')
  set_parser.add_argument('handler', metavar='<desktop file>')

  add_parser = subparsers.add_parser(
    'add',
    help='Add a handler after the existing default handlers of a MIME-type or extension.'
  )
  add_parser.add_argument('mime', metavar='<MIME-type or .ext>')
  add_parser.add_argument('handler', metavar='<desktop file>')

  unset_parser = subparsers.add_parser(
    'unset',
    help='Remove the default handlers of a MIME-type or extension.'
  )
  unset_parser.add_argument('mime', metavar='<MIME-type or .ext>')

  launch_parser = subparsers.add_parser(
    'launch',
    help='Launch the handler of a MIME-type or extension with optional arguments.'
  )
  launch_parser.add_argument(
    '-c', '--command', dest='command_only', action='store_true',
    help='Print the full command and exit.'
  )
  launch_parser.add_argument('mime', metavar='<MIME-type or .ext>')
  launch_parser.add_argument('args', nargs='*', metavar='<arg>')

  # Hidden: used by shell completion scripts.
  autocomplete_parser = subparsers.add_parser('autocomplete')
  autocomplete_parser.add_argument('-d', dest='desktop_files', action='store_true')
  autocomplete_parser.add_argument('-m', dest='mimes', action='store_true')

  return parser



##################################### Main #####################################

def main(args=None):
  if args is None:
    args = sys.argv[1:]
  parser = get_argparser()
  pargs = parser.parse_args(args)

  if pargs.use_default_args:
    extra_args = default_arguments()
    if extra_args:
      logging.debug('prepending arguments: {}'.format(quote_cmd(extra_args)))
      args = extra_args + args
      pargs = parser.parse_args(args)

  if pargs.assoc:
    regex_handlers = load_regex_handlers(pargs.assoc)
  elif pargs.use_default_assoc:
    regex_handlers = load_default_regex_handlers()
  else:
    regex_handlers = None

  deskopen = Deskopen(
    term_cmd=pargs.term,
    selector_cmd=pargs.selector,
    enable_selector=pargs.enable_selector,
    regex_handlers=regex_handlers,
    follow=(not pargs.no_follow),
    sync_dir=pargs.sync_dir,
  )

  if pargs.command == 'list':
    if pargs.all:
      for section, entries in deskopen.associations.sections():
        print('[{}]'.format(section))
        print_collection(entries, sort_a=True)
    else:
      print_collection(deskopen.associations.default, sort_a=True)

  elif pargs.command == 'open':
    if pargs.command_only:
      for c in deskopen.open_commands(pargs.paths):
        print(quote_cmd(c))
    else:
      deskopen.open(pargs.paths)

  elif pargs.command == 'get':
    mimetype = deskopen.mime_from_user(pargs.mime)
    handler = deskopen.get_handler(mimetype)
    if pargs.json:
      entry = deskopen.desktop_entry(handler)
      exe, argv = entry.get_cmd(term_cmd=deskopen.term_cmd)
      print(json.dumps({
        'handler' : handler,
        'name' : entry.name,
        'cmd' : quote_cmd([exe] + argv),
      }))
    else:
      print(handler)

  elif pargs.command == 'set':
    mimetype = deskopen.mime_from_user(pargs.mime)
    deskopen.set_handler(mimetype, deskopen.resolve_handler(pargs.handler))

  elif pargs.command == 'add':
    mimetype = deskopen.mime_from_user(pargs.mime)
    deskopen.add_handler(mimetype, deskopen.resolve_handler(pargs.handler))

  elif pargs.command == 'unset':
    deskopen.remove_handler(deskopen.mime_from_user(pargs.mime))

  elif pargs.command == 'launch':
    mimetype = deskopen.mime_from_user(pargs.mime)
    if pargs.command_only:
      for c in deskopen.launch_commands(mimetype, pargs.args):
        print(quote_cmd(c))
    else:
      deskopen.launch(mimetype, pargs.args)

  elif pargs.command == 'autocomplete':
    if pargs.desktop_files:
      for handler, name in deskopen.desktop_names():
        print('{}\t{}'.format(handler, name))
    if pargs.mimes or not pargs.desktop_files:
      for ext in deskopen.known_extensions():
        print(ext)
      for m in SYNTHETIC_MIMETYPES:
        print(m)
      for m in sorted(deskopen.known_mimetypes()):
        print(m)



def run(args=None):
  '''
  Command-line entry point. Errors are logged to STDERR and also shown as a
  desktop notification when not running in a terminal.
  '''
  if args is None:
    args = sys.argv[1:]
  logging.basicConfig(
    format='%(levelname)s: %(message)s',
    level=logging.DEBUG if ('--debug' in args) else logging.WARNING
  )
  # mimetypes keeps its tables in module state. Load them once per process.
  mimetypes.init(mimetypes_knownfiles())
  try:
    main(args)
  except (KeyboardInterrupt, BrokenPipeError):
    pass
  except Cancelled as e:
    logging.info(str(e))
    sys.exit(1)
  except (DeskopenError, OSError) as e:
    logging.error(str(e))
    if not is_attached():
      notify(NAME, str(e))
    sys.exit(1)



if __name__ == '__main__':
  run()
