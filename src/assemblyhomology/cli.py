import os
import shutil
import sys
import traceback
from contextlib import contextmanager
from pathlib import Path

import typer

from assemblyhomology import __version__
from assemblyhomology.build import AppContext, build_context
from assemblyhomology.config import settings
from assemblyhomology.domain.ids import ImplementationName, LoadID, NamespaceID
from assemblyhomology.load.restreamable import PathRestreamable
from assemblyhomology.logging import configure, logger

app = typer.Typer(no_args_is_help=True)

_state = {"verbose": False}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print tracebacks on error"),
):
    """
    Assembly Homology CLI.
    """
    _state["verbose"] = verbose
    configure(settings.LOG_LEVEL)


def _build_context() -> AppContext:
    return build_context(settings)


@contextmanager
def _context():
    """Yield an AppContext; any error prints ``Error: <message>`` and exits 1."""
    ctx = None
    try:
        ctx = _build_context()
        yield ctx
    except typer.Exit:
        raise
    except Exception as e:
        logger.error(f"Command failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        if _state["verbose"]:
            traceback.print_exc()
        raise typer.Exit(code=1)
    finally:
        if ctx is not None:
            ctx.close()


@app.command(name="load")
def load(
    load_id: str = typer.Option(..., "--load-id", help="ID of this load, e.g. a date or UUID"),
    sketch_db: Path = typer.Option(..., "--sketch-db", help="Path to the sketch database"),
    namespace_yaml: Path = typer.Option(..., "--namespace-yaml", help="Namespace descriptor"),
    seq_metadata: Path = typer.Option(
        ..., "--seq-metadata", help="Sequence metadata, one JSON object per line"
    ),
    implementation: str = typer.Option("mash", "--implementation", help="MinHash implementation"),
):
    """Load a sketch database and its sequence metadata into a namespace."""
    with _context() as ctx:
        comparator = ctx.comparators.get(ImplementationName(implementation))
        ns = ctx.loader().load(
            LoadID(load_id),
            comparator,
            sketch_db,
            PathRestreamable(namespace_yaml),
            PathRestreamable(seq_metadata),
        )
        print(
            f"✅ Loaded {ns.sketch_database.sequence_count} sequences into namespace "
            f"{ns.id.name} (load {ns.load_id.name})"
        )


namespace_app = typer.Typer(help="Namespace commands.")
app.add_typer(namespace_app, name="namespace")


@namespace_app.command("list")
def namespace_list():
    """List namespaces."""
    with _context() as ctx:
        namespaces = ctx.assembly_homology.get_namespaces()
        if not namespaces:
            print("No namespaces found.")
            return
        for ns in namespaces:
            db = ns.sketch_database
            print(
                f"{ns.id.name}\t{db.implementation_name.name}\t{db.sequence_count}\t"
                f"{ns.load_id.name}\t{ns.modification.isoformat()}"
            )


@namespace_app.command("show")
def namespace_show(namespace_id: str):
    """Show one namespace."""
    with _context() as ctx:
        ns = ctx.assembly_homology.get_namespace(NamespaceID(namespace_id))
        db = ns.sketch_database
        params = db.parameters
        print(f"ID:               {ns.id.name}")
        print(f"Description:      {ns.description or ''}")
        print(f"Data source:      {ns.data_source_id.name}")
        print(f"Source database:  {ns.source_database_id}")
        print(f"Filter:           {ns.filter_id.name if ns.filter_id else ''}")
        print(f"Auth source:      {ctx.assembly_homology.get_auth_source(ns) or ''}")
        print(f"Implementation:   {db.implementation_name.name} "
              f"{db.implementation_information.version}")
        print(f"K-mer size:       {params.kmer_size}")
        if params.sketch_size is not None:
            print(f"Sketch size:      {params.sketch_size}")
        else:
            print(f"Scaling:          {params.scaling}")
        print(f"Sequences:        {db.sequence_count}")
        print(f"Sketch database:  {db.location}")
        print(f"Load ID:          {ns.load_id.name}")
        print(f"Modified:         {ns.modification.isoformat()}")


@namespace_app.command("delete")
def namespace_delete(
    namespace_id: str,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete a namespace and the sequence metadata of its current load."""
    if not yes:
        typer.confirm(f"Delete namespace {namespace_id}?", abort=True)
    with _context() as ctx:
        ctx.assembly_homology.delete_namespace(NamespaceID(namespace_id))
        print(f"✅ Deleted namespace {namespace_id}")


db_app = typer.Typer(help="Database management commands.")
app.add_typer(db_app, name="db")


@db_app.command("init")
def init():
    """Initialize the database tables."""
    with _context():
        logger.info("Database initialized successfully.")
        print("✅ Database initialized.")


@app.command(name="serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
):
    """Run the HTTP service."""
    import uvicorn
    from assemblyhomology.api.app import create_app

    uvicorn.run(create_app(settings=settings), host=host, port=port)


@app.command(name="doctor")
def doctor():
    """
    Check system configuration and environment health.
    """
    logger.info("Running doctor check...")

    failures: list[str] = []
    passed = 0

    print("\n🩺 Assembly Homology Doctor\n")

    print("[Environment]")
    print(f"  Python:          {sys.version.split()[0]}")
    print(f"  assemblyhomology {__version__}")
    passed += 1

    print("\n[MinHash]")
    mash = shutil.which("mash")
    if mash:
        print(f"  mash:            ✅ {mash}")
        passed += 1
    else:
        print("  mash:            ❌ Not found on PATH")
        failures.append("mash executable not found; searches and loads will fail")

    print("\n[Temporary files]")
    temp_dir = Path(settings.TEMP_DIR)
    try:
        temp_dir.mkdir(parents=True, exist_ok=True)
        writable = os.access(temp_dir, os.W_OK)
    except OSError:
        writable = False
    if writable:
        print(f"  {temp_dir}:      ✅ Writable")
        passed += 1
    else:
        print(f"  {temp_dir}:      ❌ Not writable")
        failures.append(f"{temp_dir.absolute()} is not writable")

    print("\n[Filters]")
    try:
        from assemblyhomology.filters.registry import FilterRegistry
        registry = FilterRegistry.from_settings(settings.FILTERS)
        ids = ", ".join(f.name for f in registry.ids) or "none"
        print(f"  Configured:      ✅ {ids}")
        passed += 1
    except Exception as e:
        print(f"  Configured:      ❌ {e}")
        failures.append(f"Filter configuration is invalid: {e}")

    total = passed + len(failures)
    print(f"\n{'─' * 50}")
    if failures:
        print(f"Result: {passed}/{total} checks passed\n")
        for msg in failures:
            print(f"  ❌ {msg}")
        print()
        raise typer.Exit(code=1)
    print(f"Result: {passed}/{total} checks passed, all good ✅")
    print()


if __name__ == "__main__":
    app()
