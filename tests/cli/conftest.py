import functools
import logging

import click.testing
import pytest

from kmirror.cli import main


@pytest.fixture(autouse=True)
def _restore_root_logger():
    logger = logging.getLogger()
    handlers = list(logger.handlers)
    level = logger.level
    try:
        yield
    finally:
        logger.handlers[:] = handlers
        logger.setLevel(level)


@pytest.fixture()
def runner():
    runner = click.testing.CliRunner()
    return runner


@pytest.fixture()
def invoke(runner):
    return functools.partial(runner.invoke, main)


@pytest.fixture()
def real_run(mocker):
    return mocker.patch('kmirror.reactor.running.run')


@pytest.fixture()
def real_snapshot(mocker):
    return mocker.patch('kmirror.reactor.running.snapshot', return_value=[
        {'metadata': {'name': 'b', 'namespace': 'ns', 'resourceVersion': '2'}},
        {'metadata': {'name': 'a'}},
    ])


@pytest.fixture()
def configure(mocker):
    return mocker.patch('kmirror.engines.loggers.configure')
