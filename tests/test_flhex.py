import sys

import pytest

import flhex
from flhex.__main__ import main as _main


def test_version():
    assert flhex.__version__ == '0.1.0'


def test_exports():
    assert flhex.ByteImage is flhex.image.ByteImage
    assert flhex.decode is flhex.ihex.decode
    assert flhex.encode is flhex.ihex.encode
    assert flhex.IhexRecord is flhex.ihex.IhexRecord
    assert flhex.IhexTag is flhex.ihex.IhexTag
    assert issubclass(flhex.ChecksumMismatchError, flhex.FlhexError)
    assert issubclass(flhex.MalformedHeaderError, flhex.FlhexError)
    assert issubclass(flhex.UnsupportedRecordTypeError, flhex.FlhexError)
    assert issubclass(flhex.AllocationError, MemoryError)


def test_main(monkeypatch, capsys):
    monkeypatch.setattr(sys, 'argv', ['flhex', '--version'])
    with pytest.raises(SystemExit) as excinfo:
        _main('__main__')
    assert excinfo.value.code == 0
    assert capsys.readouterr().out == 'flhex v0.1.0\n'


def test_main_not_main():
    _main('flhex.__main__')
