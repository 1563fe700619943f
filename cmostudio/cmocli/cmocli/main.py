from __future__ import annotations
import argparse
import logging
import os
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from libcmo.model import CmoError, PassConfig
from libcmo.prefix import derive_strip_prefix, find_model_files
from libcmo.summary import summarize_cmo
from libcmo.writer import transcode_files

console = Console()

def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )

def _config(args: argparse.Namespace, dry_run: bool = False) -> PassConfig:
    prefix = ""
    if not args.suffix_cut and args.fbx:
        prefix = derive_strip_prefix(os.getcwd(), args.fbx)
    return PassConfig(
        keep_bones=getattr(args, "bones", False),
        keep_animation=getattr(args, "anime", False),
        strip_prefix=prefix,
        dry_run=dry_run,
    )

def cmd_pathcut(args: argparse.Namespace) -> int:
    if not args.suffix_cut and not args.fbx:
        console.print("[red]--fbx is required unless -s is given[/red]")
        return 2
    try:
        paths = find_model_files(args.cmo)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        return 2

    config = _config(args, dry_run=args.dry_run)
    if config.prefix_strip:
        console.print(f"[bold]Strip prefix:[/bold] {config.strip_prefix}")
    else:
        console.print("[bold]Policy:[/bold] cut before last '_'")

    if not paths:
        console.print(f"[yellow]No .cmo files in {args.cmo}[/yellow]")
        return 0

    outcomes = transcode_files(paths, config)

    t = Table(title="Dry run" if args.dry_run else "Results")
    t.add_column("File", overflow="fold")
    t.add_column("Status", justify="center")
    t.add_column("Refs", justify="right")
    t.add_column("Renamed", justify="right")
    t.add_column("Detail", overflow="fold")
    for o in outcomes:
        status = "[green]ok[/green]" if o.ok else "[red]FAILED[/red]"
        changed = sum(1 for r in o.rewrites if r.changed)
        n = len(o.renamed) + sum(1 for r in o.rewrites if r.action == "planned")
        t.add_row(os.path.basename(o.path), status, str(changed), str(n), str(o.error or ""))
    console.print(t)

    if args.dry_run or args.verbose:
        rt = Table(title="References")
        rt.add_column("Kind")
        rt.add_column("Stored", overflow="fold")
        rt.add_column("New", overflow="fold")
        rt.add_column("Asset")
        for o in outcomes:
            for r in o.rewrites:
                if r.changed:
                    rt.add_row(r.kind, r.raw, r.shortened, r.action)
        console.print(rt)

    failed = [o for o in outcomes if not o.ok]
    if failed:
        console.print(f"[red]{len(failed)} of {len(outcomes)} file(s) failed.[/red]")
        return 1
    console.print(f"[green]Done.[/green] {len(outcomes)} file(s).")
    return 0

def cmd_summary(args: argparse.Namespace) -> int:
    try:
        s = summarize_cmo(args.cmo, _config(args))
    except (CmoError, OSError) as e:
        console.print(f"[red]{args.cmo}: {e}[/red]")
        return 1
    console.print(f"[bold]File:[/bold] {s.path}")
    console.print(f"[bold]Size:[/bold] {s.file_size} bytes")
    console.print(f"[bold]Meshes:[/bold] {s.stats.meshes}   [bold]Materials:[/bold] {s.stats.materials}")
    if s.stats.trailing:
        console.print(f"[yellow]Unwalked trailing bytes:[/yellow] {s.stats.trailing}")

    mt = Table(title="Materials")
    mt.add_column("Mesh", overflow="fold")
    mt.add_column("Material", overflow="fold")
    mt.add_column("Shader", overflow="fold")
    mt.add_column("Textures", justify="right")
    mt.add_column("Skeleton", justify="center")
    for m in s.meshes:
        for mat in m.materials:
            used = sum(1 for tex in mat.textures if tex)
            mt.add_row(m.name, mat.name, mat.shader, str(used), "yes" if mat.skeleton else "-")
    console.print(mt)

    t = Table(title="References")
    t.add_column("Kind")
    t.add_column("Stored", overflow="fold")
    t.add_column("Shortened", overflow="fold")
    t.add_column("Asset")
    if s.rewrites:
        for r in s.rewrites:
            t.add_row(r.kind, r.raw, r.shortened, r.action)
    else:
        t.add_row("(none found)", "-", "-", "-")
    console.print(t)
    return 0

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="cmocli")
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="cmd", required=True)

    c = sub.add_parser("pathcut", help="Shorten shader/texture names in every .cmo of a folder")
    c.add_argument("-f", "--fbx", help="FBX source folder, relative to the current directory")
    c.add_argument("-c", "--cmo", required=True, help="Folder holding the .cmo files and their assets")
    c.add_argument("-b", "--bones", action="store_true", help="Models carry bones")
    c.add_argument("-a", "--anime", action="store_true", help="Models carry animation clips")
    c.add_argument("-s", "--suffix-cut", action="store_true",
                   help="Cut texture names before the last '_' instead of stripping the build prefix")
    c.add_argument("--dry-run", action="store_true", help="Report only, change nothing")
    c.set_defaults(fn=cmd_pathcut)

    s = sub.add_parser("summary", help="List meshes, materials and references of a .cmo file")
    s.add_argument("cmo")
    s.add_argument("-f", "--fbx")
    s.add_argument("-s", "--suffix-cut", action="store_true")
    s.add_argument("-b", "--bones", action="store_true")
    s.add_argument("-a", "--anime", action="store_true")
    s.set_defaults(fn=cmd_summary)

    return p

def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    return int(args.fn(args))

if __name__ == "__main__":
    raise SystemExit(main())
