#!/usr/bin/env python3
"""
Upload Kanban configuration from a .env file to AWS Parameter Store.

Each known environment variable maps to a parameter under the prefix
(``/kanban`` by default), matching the names ``services.parameter_store``
reads at runtime.
"""

import sys
from pathlib import Path
from typing import Dict

import boto3
import click
from botocore.exceptions import ClientError
from dotenv import dotenv_values

# Parameter name (relative to the prefix) -> environment variable
PARAMETER_MAP = {
    "session-table-name": "SESSION_TABLE_NAME",
    "cognito/domain": "COGNITO_DOMAIN",
    "cognito/issuer-url": "COGNITO_ISSUER_URL",
    "cognito/client-id": "COGNITO_CLIENT_ID",
    "oauth/scope": "OAUTH_SCOPE",
    "oauth/http-timeout": "OAUTH_HTTP_TIMEOUT",
    "app-url": "APP_URL",
    "session/ttl-seconds": "SESSION_TTL_SECONDS",
    "session/login-ttl-seconds": "LOGIN_SESSION_TTL_SECONDS",
    "session/refresh-buffer-seconds": "TOKEN_REFRESH_BUFFER_SECONDS",
    "session/cookie-secure": "COOKIE_SECURE",
    "dynamodb/max-attempts": "DDB_MAX_ATTEMPTS",
}

REQUIRED = ("cognito/domain", "cognito/issuer-url", "cognito/client-id")


def collect_parameters(env_file_path: str = ".env") -> Dict[str, str]:
    """
    Read the .env file and pick out the values Parameter Store should hold.

    Args:
        env_file_path: Path to .env file

    Returns:
        Parameter names (without prefix) to values
    """
    if not Path(env_file_path).exists():
        click.secho(f"Error: {env_file_path} file not found", fg="red", err=True)
        sys.exit(1)

    values = dotenv_values(env_file_path)
    parameters = {
        name: values[env_var]
        for name, env_var in PARAMETER_MAP.items()
        if values.get(env_var)
    }

    missing = [PARAMETER_MAP[name] for name in REQUIRED if name not in parameters]
    if missing:
        click.secho(
            f"Warning: required settings missing from {env_file_path}: "
            f"{', '.join(missing)}",
            fg="yellow",
        )

    return parameters


def upload_parameters(
    parameters: Dict[str, str], parameter_prefix: str = "/kanban", dry_run: bool = False
) -> None:
    """
    Upload parameters to AWS Parameter Store.

    Args:
        parameters: Dictionary of parameter names to values
        parameter_prefix: Prefix for parameter names
        dry_run: If True, only print what would be uploaded
    """
    if not parameters:
        click.secho("No parameters to upload", fg="yellow")
        return

    if dry_run:
        click.secho("DRY RUN - Would upload the following parameters:", fg="blue")
        for param_name, value in parameters.items():
            full_name = f"{parameter_prefix}/{param_name}"
            masked_value = value[:10] + "..." if len(value) > 10 else value
            click.echo(f"  {full_name} = {masked_value}")
        return

    ssm = boto3.client("ssm")

    with click.progressbar(parameters.items(), label="Uploading parameters") as items:
        for param_name, value in items:
            full_name = f"{parameter_prefix}/{param_name}"
            try:
                response = ssm.put_parameter(
                    Name=full_name,
                    Value=value,
                    Type="String",
                    Description=f"Kanban setting: {param_name}",
                    Overwrite=True,
                )
                click.secho(
                    f"Uploaded {full_name} (version {response['Version']})",
                    fg="green",
                )
            except ClientError as e:
                click.secho(f"Failed to upload {full_name}: {e}", fg="red", err=True)


def verify_parameters(
    parameters: Dict[str, str], parameter_prefix: str = "/kanban"
) -> None:
    """Check that every parameter now exists."""
    click.secho("\nVerifying uploaded parameters...", fg="blue")
    ssm = boto3.client("ssm")

    for param_name in parameters:
        full_name = f"{parameter_prefix}/{param_name}"
        try:
            response = ssm.get_parameter(Name=full_name)
            click.secho(
                f"{full_name} exists (version {response['Parameter']['Version']})",
                fg="green",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ParameterNotFound":
                click.secho(f"{full_name} not found", fg="red")
            else:
                click.secho(f"Error checking {full_name}: {e}", fg="red")


@click.command()
@click.option("--env-file", default=".env", help="Path to .env file", show_default=True)
@click.option(
    "--prefix", default="/kanban", help="Parameter Store prefix", show_default=True
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be uploaded without uploading"
)
@click.option("--verify", is_flag=True, help="Verify parameters after upload")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
def main(env_file: str, prefix: str, dry_run: bool, verify: bool, verbose: bool):
    """
    Upload Kanban settings from a .env file to AWS Parameter Store.
    """
    if verbose:
        click.secho(f"Loading settings from {env_file}", fg="blue")

    parameters = collect_parameters(env_file)

    if not parameters:
        click.secho("No parameters found to upload", fg="red", err=True)
        sys.exit(1)

    click.secho(f"Found {len(parameters)} parameters", fg="green")

    if verbose:
        for param_name in parameters:
            click.echo(f"  - {param_name}")

    upload_parameters(parameters, prefix.rstrip("/"), dry_run)

    if dry_run:
        click.secho("\nDry run complete.", fg="blue")
        return

    if verify:
        verify_parameters(parameters, prefix.rstrip("/"))

    click.secho("\nParameter upload complete!", fg="green")
    click.echo(f"Parameters are now available at prefix: {prefix}")


if __name__ == "__main__":
    main()
