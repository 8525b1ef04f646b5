'''Tests for desktop entries, command building and regex handlers.'''

import pytest

import Deskopen
from Deskopen import (
  BadCmd,
  BadEntry,
  DesktopEntry,
  ExecError,
  MODE_LAUNCH,
  MODE_OPEN,
  interpolate_term_cmd,
  parse_regex_handlers,
)


def entry(exe, terminal=False):
  return DesktopEntry('app.desktop', 'App', exe, terminal=terminal)


class TestParse:

  def test_fields(self, tmp_path):
    path = tmp_path / 'editor.desktop'
    path.write_text(
      '[Desktop Entry]\n'
      'Name=Editor\n'
      'Name[de]=Bearbeiter\n'
      'Exec=editor %F\n'
      'Terminal=true\n'
      'MimeType=text/plain;text/x-python;\n'
      'Categories=Utility;TextEditor;\n'
    )
    e = DesktopEntry.parse(str(path))
    assert e.filename == 'editor.desktop'
    assert e.name == 'Editor'
    assert e.exec == 'editor %F'
    assert e.terminal
    assert e.mimetypes == ['text/plain', 'text/x-python']
    assert e.categories == {'Utility', 'TextEditor'}

  def test_first_name_and_last_exec(self, tmp_path):
    path = tmp_path / 'dup.desktop'
    path.write_text(
      '[Desktop Entry]\n'
      'Name=\n'
      'Name=First\n'
      'Name=Second\n'
      'Exec=first\n'
      'Exec=second %f\n'
    )
    e = DesktopEntry.parse(str(path))
    assert e.name == 'First'
    assert e.exec == 'second %f'

  def test_other_sections_are_ignored(self, tmp_path):
    path = tmp_path / 'actions.desktop'
    path.write_text(
      '[Desktop Entry]\n'
      'Name=App\n'
      'Exec=app %u\n'
      '\n'
      '[Desktop Action new-window]\n'
      'Name=New Window\n'
      'Exec=app --new-window\n'
    )
    e = DesktopEntry.parse(str(path))
    assert e.name == 'App'
    assert e.exec == 'app %u'
    assert not e.terminal

  def test_invalid_mimetypes_are_dropped(self, tmp_path):
    path = tmp_path / 'app.desktop'
    path.write_text(
      '[Desktop Entry]\nName=App\nExec=app\nMimeType=image/png;bogus;image/png;\n'
    )
    assert DesktopEntry.parse(str(path)).mimetypes == ['image/png']

  @pytest.mark.parametrize('text', [
    '[Desktop Entry]\nExec=app\n',
    '[Desktop Entry]\nName=App\n',
    '[Other]\nName=App\nExec=app\n',
    '[Desktop Entry]\nName=App\nthis is not a property\nExec=app\n',
  ])
  def test_malformed(self, tmp_path, text):
    path = tmp_path / 'bad.desktop'
    path.write_text(text)
    with pytest.raises(BadEntry):
      DesktopEntry.parse(str(path))

  def test_missing_file(self, tmp_path):
    with pytest.raises(BadEntry):
      DesktopEntry.parse(str(tmp_path / 'missing.desktop'))


class TestGetCmd:

  def test_single_file(self):
    assert entry('app %f').get_cmd(['a.txt']) == ('app', ['a.txt'])

  def test_no_arguments(self):
    assert entry('app %f --flag').get_cmd() == ('app', ['--flag'])

  def test_list_field_code_is_spliced(self):
    assert entry('app %F --flag').get_cmd(['a', 'b']) == ('app', ['a', 'b', '--flag'])

  def test_embedded_field_code_is_joined(self):
    assert entry('app --open=%u').get_cmd(['a', 'b']) == ('app', ['--open=a b'])

  def test_quoted_words(self):
    assert entry('"my app" --title "a b" %f').get_cmd(['x']) == ('my app', ['--title', 'a b', 'x'])

  def test_backslashes_in_arguments_are_kept(self):
    assert entry('app --file=%f').get_cmd(['a\\1']) == ('app', ['--file=a\\1'])

  @pytest.mark.parametrize('exe', ['', 'app "unbalanced'])
  def test_bad_command(self, exe):
    with pytest.raises(BadCmd):
      entry(exe).get_cmd(['a'])

  def test_terminal_is_prepended_when_detached(self):
    e = entry('vim %f', terminal=True)
    assert e.get_cmd(['a.txt'], term_cmd='xterm -e') == ('xterm', ['-e', 'vim', 'a.txt'])

  def test_terminal_is_not_used_when_attached(self, monkeypatch):
    monkeypatch.setattr(Deskopen, 'is_attached', lambda: True)
    e = entry('vim %f', terminal=True)
    assert e.get_cmd(['a.txt'], term_cmd='xterm -e') == ('vim', ['a.txt'])


class TestBuildCommands:

  def test_open_one_per_file(self):
    assert entry('app %f').build_commands(MODE_OPEN, ['a', 'b']) == [
      ['app', 'a'],
      ['app', 'b'],
    ]

  def test_open_all_at_once(self):
    assert entry('app %U').build_commands(MODE_OPEN, ['a', 'b']) == [
      ['app', 'a', 'b'],
    ]

  def test_launch_passes_all_arguments(self):
    assert entry('app %f').build_commands(MODE_LAUNCH, ['a', 'b']) == [
      ['app', 'a', 'b'],
    ]

  def test_open_without_arguments(self):
    assert entry('app %f').build_commands(MODE_OPEN, []) == [['app']]


class TestExecute:

  def test_runs_every_command(self, spawned):
    entry('app %f').execute(MODE_OPEN, ['a', 'b'])
    assert spawned == [(['app', 'a'], False), (['app', 'b'], False)]

  def test_failures_are_collected(self, monkeypatch):
    calls = []

    def _run_cmd(cmd, terminal=False):
      calls.append(cmd)
      if cmd[1] == 'a':
        raise FileNotFoundError(2, 'No such file or directory')

    monkeypatch.setattr(Deskopen, 'run_cmd', _run_cmd)
    with pytest.raises(ExecError) as excinfo:
      entry('app %f').execute(MODE_OPEN, ['a', 'b'])
    assert calls == [['app', 'a'], ['app', 'b']]
    assert [cmd for cmd, _ in excinfo.value.failures] == [['app', 'a']]


class TestInterpolateTermCmd:

  def test_appended_without_placeholder(self):
    assert list(interpolate_term_cmd('xterm -e', ['vim', 'a b'])) == ['xterm', '-e', 'vim', 'a b']

  def test_placeholder_word(self):
    assert list(interpolate_term_cmd('urxvt -e %s --hold', ['vim', 'a'])) == ['urxvt', '-e', 'vim', 'a', '--hold']

  def test_placeholder_within_word(self):
    assert list(interpolate_term_cmd('st -e sh -c "exec %s"', ['vim', 'a b'])) == [
      'st', '-e', 'sh', '-c', "exec vim 'a b'"
    ]

  def test_unbalanced_quotes(self):
    with pytest.raises(BadCmd):
      list(interpolate_term_cmd('xterm -title "oops -e', ['vim']))

  def test_escaped_percent(self):
    assert list(interpolate_term_cmd('term --title 100%% -e', ['vim'])) == [
      'term', '--title', '100%', '-e', 'vim'
    ]


class TestRegexHandlers:
  text = (
    '# custom handlers\n'
    'mpv %F\n'
    '  ^https?://(www\\.)?youtube\\.com/\n'
    '  \\.mkv$\n'
    '\n'
    'unused\n'
    '  (\n'
  )

  def test_parse(self):
    handlers = parse_regex_handlers(self.text.splitlines(True))
    assert len(handlers) == 1
    assert handlers[0].exec == 'mpv %F'
    assert len(handlers[0].regexes) == 2

  @pytest.mark.parametrize('arg, expected', [
    ('https://www.youtube.com/watch?v=1', True),
    ('/videos/film.mkv', True),
    ('/videos/film.mp4', False),
  ])
  def test_matches(self, arg, expected):
    handler = parse_regex_handlers(self.text.splitlines(True))[0]
    assert handler.matches(arg) is expected

  def test_commands(self):
    handler = parse_regex_handlers(self.text.splitlines(True))[0]
    assert handler.build_commands(MODE_OPEN, ['a.mkv', 'b.mkv']) == [['mpv', 'a.mkv', 'b.mkv']]
