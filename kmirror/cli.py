import asyncio
import dataclasses
import functools
import json
from typing import Any, Callable, Optional

import click
import yaml

from kmirror.engines import loggers
from kmirror.reactor import running
from kmirror.structs import bodies, configuration, ids, references


class LogFormatParamType(click.Choice):

    def __init__(self) -> None:
        super().__init__(choices=[v.name.lower() for v in loggers.LogFormat])

    def convert(self, value: Any, param: Any, ctx: Any) -> loggers.LogFormat:
        name: str = super().convert(value, param, ctx)
        return loggers.LogFormat[name.upper()]


class ResourceParamType(click.ParamType):
    name = 'resource'

    def convert(self, value: Any, param: Any, ctx: Any) -> references.Resource:
        if isinstance(value, references.Resource):
            return value
        try:
            return references.parse_resource(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


def logging_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to configure logging in all commands the same way."""
    @click.option('-v', '--verbose', is_flag=True)
    @click.option('-d', '--debug', is_flag=True)
    @click.option('-q', '--quiet', is_flag=True)
    @click.option('--log-format', type=LogFormatParamType(), default='full')
    @click.option('--log-refkey', type=str)
    @click.option('--log-prefix/--no-log-prefix', default=None)
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(verbose: bool, quiet: bool, debug: bool,
                log_format: loggers.LogFormat = loggers.LogFormat.FULL,
                log_prefix: Optional[bool] = False,
                log_refkey: Optional[str] = None,
                *args: Any, **kwargs: Any) -> Any:
        loggers.configure(debug=debug, verbose=verbose, quiet=quiet,
                          log_format=log_format, log_refkey=log_refkey, log_prefix=log_prefix)
        return fn(*args, **kwargs)

    return wrapper


def resource_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to pick the resource & its filtering the same way in all commands."""
    @click.option('-n', '--namespace', type=str, default=None)
    @click.option('--cluster-scoped', is_flag=True)
    @click.option('-l', '--selector', 'label_selector', type=str)
    @click.option('--field-selector', type=str)
    @click.option('--context', 'context_name', type=str)
    @click.argument('resource', type=ResourceParamType())
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(resource: references.Resource,
                namespace: Optional[str],
                cluster_scoped: bool,
                label_selector: Optional[str],
                field_selector: Optional[str],
                *args: Any, **kwargs: Any) -> Any:
        if cluster_scoped and namespace is not None:
            raise click.UsageError("Either --namespace or --cluster-scoped can be used, not both.")
        if cluster_scoped:
            resource = dataclasses.replace(resource, namespaced=False)
        params = references.ListParams(label_selector=label_selector, field_selector=field_selector)
        return fn(*args,
                  resource=resource,
                  namespace=references.NamespaceName(namespace) if namespace else None,
                  params=params,
                  **kwargs)

    return wrapper


@click.version_option(prog_name='kmirror')
@click.group(name='kmirror', context_settings=dict(
    auto_envvar_prefix='KMIRROR',
))
def main() -> None:
    pass


@main.command()
@logging_options
@resource_options
@click.option('--server-timeout', type=float)
@click.option('--reconnect-backoff', type=float)
@click.option('--error-backoff', type=float)
@click.option('--reset-on-errors/--no-reset-on-errors', default=None)
def mirror(
        resource: references.Resource,
        namespace: references.Namespace,
        params: references.ListParams,
        context_name: Optional[str],
        server_timeout: Optional[float],
        reconnect_backoff: Optional[float],
        error_backoff: Optional[float],
        reset_on_errors: Optional[bool],
) -> None:
    """ Keep the resource mirrored locally until interrupted. """
    settings = configuration.ReflectorSettings()
    if server_timeout is not None:
        settings.watching.server_timeout = server_timeout
    if reconnect_backoff is not None:
        settings.watching.reconnect_backoff = reconnect_backoff
    if error_backoff is not None:
        settings.watching.error_backoff = error_backoff
    if reset_on_errors is not None:
        settings.watching.reset_on_errors = reset_on_errors
    return running.run(
        resource=resource,
        namespace=namespace,
        params=params,
        settings=settings,
        context_name=context_name,
    )


@main.command(name='list')
@logging_options
@resource_options
@click.option('-o', '--output', type=click.Choice(['names', 'yaml', 'json']), default='names')
def list_(
        resource: references.Resource,
        namespace: references.Namespace,
        params: references.ListParams,
        context_name: Optional[str],
        output: str,
) -> None:
    """ List the resource once, as the mirror would see it initially. """
    objs = asyncio.run(running.snapshot(
        resource=resource,
        namespace=namespace,
        params=params,
        context_name=context_name,
    ))
    if output == 'json':
        click.echo(json.dumps(objs, indent=2))
    elif output == 'yaml':
        click.echo(yaml.safe_dump_all(objs, sort_keys=False), nl=False)
    else:
        for obj in objs:
            version = bodies.get_resource_version(obj)
            click.echo(f"{ids.ObjectId.key_for(obj)}\t{version or ''}")
