import pytest


def test_help_in_root(invoke):
    result = invoke(['--help'])
    assert result.exit_code == 0
    assert 'Usage: kmirror' in result.output
    assert '  mirror' in result.output
    assert '  list' in result.output


@pytest.mark.parametrize('command', ['mirror', 'list'])
def test_help_in_subcommands(invoke, command, real_run, real_snapshot):
    result = invoke([command, '--help'])
    assert result.exit_code == 0
    assert not real_run.called
    assert not real_snapshot.called
    assert '--namespace' in result.output
    assert '--selector' in result.output
    assert '--field-selector' in result.output
    assert '--context' in result.output
    assert '--verbose' in result.output
    assert '--log-format' in result.output


def test_version(invoke):
    result = invoke(['--version'])
    assert result.exit_code == 0
    assert 'kmirror' in result.output
