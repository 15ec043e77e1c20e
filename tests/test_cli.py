from __future__ import annotations

import io
import logging
from pathlib import Path

from PIL import Image
import pytest

from rmbg.application.remove_background_use_case import ProcessingError
from rmbg.config import PROGRAM_NAME, VERSION
from rmbg.presentation import cli


class FakeUseCase:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = []

    def execute(self, input_path, output_path, options):
        self.calls.append((Path(input_path), Path(output_path), options))
        if self.error:
            raise self.error
        Path(output_path).write_bytes(b'out')
        return Path(output_path)


@pytest.fixture
def fake_use_case(monkeypatch) -> FakeUseCase:
    fake = FakeUseCase()
    monkeypatch.setenv('REMOVE_BG_API_KEY', 'test-key')
    monkeypatch.setenv('RMBG_BATCH_DELAY_SECONDS', '0')
    monkeypatch.setattr(cli, 'build_use_case', lambda settings: fake)
    return fake


def _image(path: Path) -> Path:
    out = io.BytesIO()
    Image.new('RGB', (8, 8), 'blue').save(out, format='PNG')
    path.write_bytes(out.getvalue())
    return path


def test_parse_args_defaults() -> None:
    args = cli.parse_args(['image.jpg'])
    assert args.input_path == 'image.jpg'
    assert args.output_path is None
    assert args.output_format == 'png'
    assert args.compress is False
    assert args.quality == 90


def test_parse_args_compress_with_quality() -> None:
    args = cli.parse_args(['-c', '75', 'image.jpg'])
    assert args.compress is True
    assert args.quality == 75
    assert args.input_path == 'image.jpg'


def test_parse_args_compress_leaves_path_alone() -> None:
    args = cli.parse_args(['-c', 'image.jpg', 'out.png'])
    assert args.compress is True
    assert args.quality == 90
    assert args.input_path == 'image.jpg'
    assert args.output_path == 'out.png'


def test_parse_args_compress_out_of_range_is_a_path() -> None:
    args = cli.parse_args(['-c', '150'])
    assert args.compress is True
    assert args.quality == 90
    assert args.input_path == '150'


def test_parse_args_compress_equals_syntax() -> None:
    args = cli.parse_args(['-c=60', '-f', 'WEBP', 'images/'])
    assert args.compress is True
    assert args.quality == 60
    assert args.output_format == 'webp'


def test_parse_args_compress_equals_empty_keeps_default() -> None:
    args = cli.parse_args(['-c=', 'image.jpg'])
    assert args.compress is True
    assert args.quality == 90


@pytest.mark.parametrize('value', ['abc', '0', '101'])
def test_parse_args_rejects_bad_quality(value: str, capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.parse_args([f'-c={value}', 'image.jpg'])
    assert exc.value.code == 2
    assert f'invalid quality value: {value}' in capsys.readouterr().err


def test_parse_args_flags_after_positionals() -> None:
    args = cli.parse_args(['image.jpg', '-f', 'webp', 'out.webp'])
    assert args.input_path == 'image.jpg'
    assert args.output_path == 'out.webp'
    assert args.output_format == 'webp'


def test_parse_args_rejects_unknown_flag() -> None:
    with pytest.raises(SystemExit) as exc:
        cli.parse_args(['-x', 'image.jpg'])
    assert exc.value.code == 2


def test_parse_args_requires_format_value() -> None:
    with pytest.raises(SystemExit):
        cli.parse_args(['image.jpg', '-f'])


def test_help_exits_cleanly(capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.parse_args(['-h'])
    assert exc.value.code == 0
    out = capsys.readouterr().out
    assert 'REMOVE_BG_API_KEY' in out
    assert f'{PROGRAM_NAME} v{VERSION}' in out


def test_resolve_format_falls_back_to_png(caplog) -> None:
    assert cli.resolve_format('gif') == 'png'
    assert 'Invalid format: gif' in caplog.text
    assert cli.resolve_format('webp') == 'webp'


def test_main_requires_api_key(monkeypatch, tmp_path, caplog) -> None:
    monkeypatch.delenv('REMOVE_BG_API_KEY', raising=False)
    assert cli.main([str(_image(tmp_path / 'a.png'))]) == 1
    assert 'REMOVE_BG_API_KEY' in caplog.text


def test_main_missing_input(fake_use_case, tmp_path) -> None:
    assert cli.main([str(tmp_path / 'missing.jpg')]) == 1
    assert fake_use_case.calls == []


def test_main_single_file_default_output(fake_use_case, tmp_path, caplog) -> None:
    caplog.set_level(logging.INFO)
    source = _image(tmp_path / 'cat.jpg')

    assert cli.main(['-f', 'webp', '-c', '80', str(source)]) == 0

    input_path, output_path, options = fake_use_case.calls[0]
    assert input_path == source
    assert output_path == tmp_path / 'cat-rm.webp'
    assert (options.output_format, options.compress, options.quality) == ('webp', True, 80)
    assert 'Successfully processed' in caplog.text


def test_main_single_file_custom_output(fake_use_case, tmp_path) -> None:
    source = _image(tmp_path / 'cat.jpg')
    target = tmp_path / 'custom.png'

    assert cli.main([str(source), str(target)]) == 0
    assert fake_use_case.calls[0][1] == target


def test_main_single_file_failure(fake_use_case, tmp_path, caplog) -> None:
    fake_use_case.error = ProcessingError('failed to write output file: disk full')
    source = _image(tmp_path / 'cat.jpg')

    assert cli.main([str(source)]) == 1
    assert 'disk full' in caplog.text


def test_main_directory(fake_use_case, tmp_path) -> None:
    photos = tmp_path / 'photos'
    photos.mkdir()
    _image(photos / 'one.png')
    _image(photos / 'two.jpg')
    fake_use_case.error = None

    assert cli.main([str(photos) + '/']) == 0
    assert [call[1] for call in fake_use_case.calls] == [
        tmp_path / 'photos-rm' / 'one-rm.png',
        tmp_path / 'photos-rm' / 'two-rm.png',
    ]


def test_parse_args_format_takes_next_token_verbatim(caplog) -> None:
    args = cli.parse_args(['-f', '-c', 'image.jpg'])

    assert args.output_format == '-c'
    assert args.compress is False
    assert args.input_path == 'image.jpg'
    assert cli.resolve_format(args.output_format) == 'png'
    assert 'Invalid format: -c' in caplog.text


def test_console_formatter_prefixes_warnings_only() -> None:
    formatter = cli.ConsoleFormatter()
    warning = logging.LogRecord('rmbg.cli', logging.WARNING, __file__, 1, 'Invalid format: %s', ('gif',), None)
    info = logging.LogRecord('rmbg.cli', logging.INFO, __file__, 1, 'Found %d images', (3,), None)

    assert formatter.format(warning) == 'WARNING: Invalid format: gif'
    assert formatter.format(info) == 'Found 3 images'


def _broken_crc_png(path: Path) -> Path:
    data = bytearray(_image(path).read_bytes())
    idat = data.index(b'IDAT')
    length = int.from_bytes(data[idat - 4:idat], 'big')
    data[idat + 4 + length] ^= 0xFF
    path.write_bytes(bytes(data))
    return path


def test_main_corrupt_image_fails_cleanly(monkeypatch, tmp_path, caplog) -> None:
    monkeypatch.setenv('REMOVE_BG_API_KEY', 'test-key')
    source = _broken_crc_png(tmp_path / 'bad.png')

    assert cli.main([str(source)]) == 1
    assert 'Failed to process' in caplog.text
    assert not (tmp_path / 'bad-rm.png').exists()


def test_main_oversized_image_fails_cleanly(monkeypatch, tmp_path, caplog) -> None:
    monkeypatch.setenv('REMOVE_BG_API_KEY', 'test-key')
    source = tmp_path / 'huge.png'
    out = io.BytesIO()
    Image.new('1', (64, 64)).save(out, format='PNG')
    source.write_bytes(out.getvalue())
    monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 1000)

    assert cli.main([str(source)]) == 1
    assert 'unreadable image' in caplog.text


def test_main_directory_output_blocked_by_file(fake_use_case, tmp_path, caplog) -> None:
    photos = tmp_path / 'photos'
    photos.mkdir()
    _image(photos / 'one.png')
    (tmp_path / 'photos-rm').write_text('not a directory')

    assert cli.main([str(photos)]) == 1
    assert fake_use_case.calls == []
    assert 'Cannot process directory' in caplog.text


def test_main_directory_unreadable(fake_use_case, tmp_path, monkeypatch) -> None:
    photos = tmp_path / 'photos'
    photos.mkdir()

    def refuse(self):
        raise PermissionError(13, 'Permission denied', str(self))

    monkeypatch.setattr(Path, 'iterdir', refuse)

    assert cli.main([str(photos)]) == 1
    assert fake_use_case.calls == []
