'''
Shared fixtures for Deskopen tests.
'''

import types

import pytest
import xdg.BaseDirectory

import Deskopen


def desktop_text(name='App', exe='app %f', mimetypes='', terminal=False, extra=''):
  lines = ['[Desktop Entry]', 'Type=Application']
  if name:
    lines.append('Name=' + name)
  if exe:
    lines.append('Exec=' + exe)
  if mimetypes:
    lines.append('MimeType=' + mimetypes)
  if terminal:
    lines.append('Terminal=true')
  return '\n'.join(lines) + '\n' + extra


@pytest.fixture
def write_desktop():
  '''Factory that writes a desktop file and returns its path.'''

  def _write(directory, filename, **kwargs):
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(desktop_text(**kwargs))
    return path

  return _write


@pytest.fixture(autouse=True)
def detached(monkeypatch):
  '''Behave as if standard output were not a terminal.'''
  monkeypatch.setattr(Deskopen, 'is_attached', lambda: False)


@pytest.fixture
def xdg_dirs(tmp_path, monkeypatch):
  '''Point the XDG base directories into tmp_path.'''
  dirs = types.SimpleNamespace(
    config=tmp_path / 'config',
    data_home=tmp_path / 'data',
    data_dir=tmp_path / 'share',
  )
  dirs.user_apps = dirs.data_home / 'applications'
  dirs.system_apps = dirs.data_dir / 'applications'
  dirs.mimeapps = dirs.config / 'mimeapps.list'
  dirs.config.mkdir()
  dirs.user_apps.mkdir(parents=True)
  dirs.system_apps.mkdir(parents=True)

  monkeypatch.setattr(xdg.BaseDirectory, 'xdg_config_home', str(dirs.config))
  monkeypatch.setattr(xdg.BaseDirectory, 'xdg_config_dirs', [str(dirs.config)])
  monkeypatch.setattr(xdg.BaseDirectory, 'xdg_data_home', str(dirs.data_home))
  monkeypatch.setattr(
    xdg.BaseDirectory, 'xdg_data_dirs', [str(dirs.data_home), str(dirs.data_dir)]
  )
  return dirs


@pytest.fixture
def apps(xdg_dirs, write_desktop):
  '''A small set of installed applications.'''
  write_desktop(
    xdg_dirs.user_apps, 'editor.desktop',
    name='Editor', exe='editor %f', mimetypes='text/plain;'
  )
  # Hidden by the user's editor.desktop.
  write_desktop(
    xdg_dirs.system_apps, 'editor.desktop',
    name='System Editor', exe='sysedit %f', mimetypes='image/png;'
  )
  write_desktop(
    xdg_dirs.system_apps, 'viewer.desktop',
    name='Viewer', exe='viewer %U', mimetypes='application/pdf;image/png;'
  )
  write_desktop(
    xdg_dirs.system_apps, 'browser.desktop',
    name='Browser', exe='browser %u',
    mimetypes='x-scheme-handler/https;x-scheme-handler/http;text/html;'
  )
  write_desktop(
    xdg_dirs.system_apps, 'vim.desktop',
    name='Vim', exe='vim %F', mimetypes='text/plain;', terminal=True
  )
  write_desktop(
    xdg_dirs.system_apps, 'broken.desktop',
    name='Broken', exe=None, mimetypes='text/plain;'
  )
  return xdg_dirs


@pytest.fixture
def deskopen(apps):
  return Deskopen.Deskopen(term_cmd='xterm -e')


@pytest.fixture
def spawned(monkeypatch):
  '''Record commands instead of running them.'''
  calls = []

  def _run_cmd(cmd, terminal=False):
    calls.append((cmd, terminal))

  monkeypatch.setattr(Deskopen, 'run_cmd', _run_cmd)
  return calls
