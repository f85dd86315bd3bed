"""provctl - sign and verify package archives with OpenPGP provenance files."""

from __future__ import annotations

import json
import logging
import sys
import traceback
from pathlib import Path

import click

from provsign import __version__
from provsign.config import ProvenanceConfig
from provsign.digest import package_digest
from provsign.exceptions import DigestMismatch, ExitCode, ProvenanceError
from provsign.provenance.manifest import ProvenanceManifest
from provsign.provenance.signing import GPGSignatureChecker, GPGSigner, sign_package
from provsign.provenance.verifier import ProvenanceVerifier
from provsign.security import safe_read_file

logger = logging.getLogger(__name__)


def handle_error(error: Exception, debug: bool) -> None:
    """Handle errors with structured output.

    Args:
        error: The exception that occurred
        debug: Whether to show full traceback
    """
    if debug:
        traceback.print_exc()
    else:
        click.echo(f"Error: {error}", err=True)

    if isinstance(error, ProvenanceError):
        sys.exit(int(error.exit_code))
    sys.exit(int(ExitCode.GENERAL_ERROR))


def configure_logging(verbose: bool) -> None:
    """Route library logging to stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@click.group()
@click.version_option(version=__version__, prog_name="provctl")
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='YAML configuration file')
@click.option('--gpg-home', type=click.Path(file_okay=False, path_type=Path),
              help='GnuPG home directory (keyring)')
@click.option('--gpg-binary', type=str, help='gpg executable (default: gpg)')
@click.option('--debug', is_flag=True, help='Enable debug mode (show full tracebacks)')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    gpg_home: Path | None,
    gpg_binary: str | None,
    debug: bool,
    verbose: bool,
):
    """Provenance signing for package archives.

    Sign a package (tgz file) with a GPG key, or verify a package
    (tgz + tgz.prov) against your GPG keyring.
    """
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    try:
        config = ProvenanceConfig.load(config_path)
        ctx.obj['config'] = config.with_overrides(
            gnupghome=str(gpg_home) if gpg_home else None,
            gpg_binary=gpg_binary,
        )
        logger.debug("Resolved configuration: %s", ctx.obj['config'].to_dict())
    except ProvenanceError as e:
        handle_error(e, debug)


@cli.command()
@click.argument('package', type=click.Path(dir_okay=False, path_type=Path))
@click.option('--interactive', '-i', is_flag=True,
              help='Let the gpg agent prompt for the passphrase')
@click.option('--passphrase', type=str, help='Passphrase for non-interactive signing')
@click.option('--local-user', '-u', 'key', type=str, help='Key id, fingerprint or user id to sign with')
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path),
              help='Provenance file to write (default: PACKAGE.prov)')
@click.pass_context
def sign(
    ctx: click.Context,
    package: Path,
    interactive: bool,
    passphrase: str | None,
    key: str | None,
    output: Path | None,
):
    """Sign a package archive using GnuPG credentials.

    Examples:
      provctl sign foo-0.1.0.tgz
      provctl sign foo-0.1.0.tgz -u release@example.com
      provctl sign foo-0.1.0.tgz --passphrase "$PASS"
    """
    debug = ctx.obj.get('debug', False)

    try:
        config = ctx.obj['config'].with_overrides(
            interactive=True if interactive else None,
            passphrase=passphrase,
            signing_key=key,
        )
        if config.signing_key:
            click.echo(f"Setting keyname to {config.signing_key}")

        click.echo(f"Signing {package}")
        prov_path = sign_package(package, GPGSigner(config), output, config)
        click.echo(f"Provenance written to {prov_path}")
    except Exception as e:
        handle_error(e, debug)


@cli.command()
@click.argument('package', type=click.Path(dir_okay=False, path_type=Path))
@click.option('--prov', 'prov_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Provenance file (default: PACKAGE.prov)')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
@click.pass_context
def verify(ctx: click.Context, package: Path, prov_path: Path | None, as_json: bool):
    """Verify a package against its provenance file.

    Checks the signature with your GnuPG keyring, then recomputes the
    package SHA-256 and compares it with the signed manifest.

    Examples:
      provctl verify foo-0.1.0.tgz
      provctl verify foo-0.1.0.tgz --prov ./downloads/foo-0.1.0.tgz.prov
    """
    debug = ctx.obj.get('debug', False)
    config = ctx.obj['config']
    prov_path = prov_path or config.provenance_path(package)

    try:
        verifier = ProvenanceVerifier(GPGSignatureChecker(config), config)
        result = verifier.verify(package, prov_path)
    except DigestMismatch as e:
        if as_json:
            click.echo(json.dumps(e.to_dict(), indent=2, sort_keys=True))
        click.echo(f"ERROR SHA verify error: {e.computed} does not match {prov_path}", err=True)
        sys.exit(int(e.exit_code))
    except Exception as e:
        handle_error(e, debug)
        return

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, sort_keys=True))
    else:
        signer = result.signature.username or result.signature.key_id or "unknown"
        click.echo(f"Signed by: {signer}")
        click.echo(f"Package SHA verified. {result.digest}")


@cli.command()
@click.argument('package', type=click.Path(dir_okay=False, path_type=Path))
@click.option('--json', 'as_json', is_flag=True, help='Print name, version and digest as JSON')
@click.pass_context
def manifest(ctx: click.Context, package: Path, as_json: bool):
    """Print the manifest that would be signed for a package."""
    debug = ctx.obj.get('debug', False)

    try:
        built = ProvenanceManifest.build(package, ctx.obj['config'])
        if as_json:
            click.echo(json.dumps(built.to_dict(), indent=2, sort_keys=True, default=str))
        else:
            click.echo(built.render().decode("utf-8"), nl=False)
    except Exception as e:
        handle_error(e, debug)


@cli.command()
@click.argument('package', type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def digest(ctx: click.Context, package: Path):
    """Print the SHA-256 digest of a package."""
    debug = ctx.obj.get('debug', False)

    try:
        click.echo(package_digest(safe_read_file(package, ctx.obj['config'].limits)))
    except Exception as e:
        handle_error(e, debug)


def main() -> None:
    """Entry point."""
    cli()


if __name__ == '__main__':
    main()
