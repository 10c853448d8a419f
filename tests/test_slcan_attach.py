from canutil.slcan_attach import main, setup_commands


def test_setup_speed_and_open():
    assert setup_commands("6", None, False, False, True) == [b"C\rS6\r", b"O\r"]


def test_setup_listen_overrides_open():
    assert setup_commands(None, None, False, True, True) == [b"L\r"]


def test_setup_btr_and_flags():
    assert setup_commands(None, "0x14", True, False, False) == [b"C\rs0x14\r", b"F\r"]


def test_setup_nothing():
    assert setup_commands() == []


def test_main_without_tty_shows_usage(capsys):
    assert main([]) == 1
    assert "Usage: slcan_attach" in capsys.readouterr().err


def test_main_speed_too_long(capsys):
    assert main(["-s", "12", "/dev/null"]) == 1
    assert "Usage: slcan_attach" in capsys.readouterr().err


def test_main_btr_too_long(capsys):
    assert main(["-b", "123456789", "/dev/null"]) == 1
    assert "Usage: slcan_attach" in capsys.readouterr().err


def test_main_name_too_long(capsys):
    assert main(["-n", "a" * 16, "/dev/null"]) == 1
    assert "Usage: slcan_attach" in capsys.readouterr().err


def test_main_unknown_option(capsys):
    assert main(["-x", "/dev/null"]) == 1
    assert "Usage: slcan_attach" in capsys.readouterr().err


def test_main_missing_tty(tmp_path, capsys):
    missing = tmp_path / "nope"
    assert main([str(missing)]) == 1
    assert str(missing) in capsys.readouterr().err


def test_main_writes_commands_before_attach(tmp_path, capsys):
    target = tmp_path / "tty"
    target.write_bytes(b"")
    assert main(["-s6", "-f", "-o", str(target)]) == 1
    assert target.read_bytes() == b"".join(setup_commands("6", None, True, False, True))
    assert "ioctl TIOCSETD" in capsys.readouterr().err


def test_main_detach_only_writes_nothing(tmp_path, capsys):
    target = tmp_path / "tty"
    target.write_bytes(b"")
    assert main(["-d", "-c", str(target)]) == 1
    assert target.read_bytes() == b""
    assert "ioctl" in capsys.readouterr().err