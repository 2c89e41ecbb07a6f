import logging
from pathlib import Path

import click

from skills_install.cli.output import ConsoleReporter, user_output
from skills_install.core.agents import default_canonical_dir
from skills_install.core.context import SkillsContext, create_context
from skills_install.core.exceptions import ManifestError
from skills_install.core.manifest import load_manifest
from skills_install.skills.fetcher import SourceFetcher
from skills_install.skills.reconciler import Reconciler
from skills_install.skills.sync import SkillSync

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


@click.command("skills-install", context_settings=CONTEXT_SETTINGS)
@click.option("--force", is_flag=True, help="Re-clone every remote source, ignoring the cache")
@click.option("--verbose", "-v", is_flag=True, help="Print one line per action")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "--jobs",
    "-j",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum number of sources processed concurrently (default: all)",
)
@click.argument("manifest_path", metavar="MANIFEST", type=click.Path(path_type=Path))
@click.pass_context
def cli(
    ctx: click.Context,
    force: bool,
    verbose: bool,
    debug: bool,
    jobs: int | None,
    manifest_path: Path,
) -> None:
    """Reconcile declared agent skills from MANIFEST."""
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s - %(levelname)s - %(message)s")

    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        ctx.obj = create_context()
    skills_ctx: SkillsContext = ctx.obj

    try:
        manifest = load_manifest(manifest_path, home=skills_ctx.home, environ=skills_ctx.environ)
    except ManifestError as e:
        user_output(click.style("Error: ", fg="red") + str(e))
        raise SystemExit(1) from e

    if verbose:
        user_output(f"Reconciling agent skills (mode: {manifest.mode})...")

    canonical_dir = manifest.canonical_dir or default_canonical_dir(skills_ctx.home)
    reconciler = Reconciler(
        fetcher=SourceFetcher(
            git=skills_ctx.git,
            cwd=skills_ctx.cwd,
            home=skills_ctx.home,
            temp_root=skills_ctx.temp_root,
        ),
        sync=SkillSync(canonical_dir=canonical_dir, agent_dirs=skills_ctx.agent_dirs),
        reporter=ConsoleReporter(verbose=verbose),
        max_workers=jobs,
    )
    update_hook = (
        skills_ctx.update_hook_factory(manifest.skills_bin)
        if manifest.skills_bin is not None
        else None
    )

    result = reconciler.run(manifest, force=force, update_hook=update_hook)
    if not result.success:
        raise SystemExit(1)
