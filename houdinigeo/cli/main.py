#!/usr/bin/env python
from __future__ import annotations

import argparse
import os
from pathlib import Path

from houdinigeo.encoding.geoio import load_geo, save_geo
from houdinigeo.io import load_stl, save_stl
from houdinigeo.models import ATTRIBUTE_OWNER_KEYS, Document


def _ensure_parent(path: str | os.PathLike[str]) -> None:
    parent = Path(path).expanduser().parent
    if parent != Path('.'):
        parent.mkdir(parents=True, exist_ok=True)


def _add_info_arguments(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("--geo", required=True, help="Input .geo file path.")


def _add_reformat_arguments(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("--geo", required=True, help="Input .geo file path.")
    sub.add_argument("--out", required=True, help="Output .geo file path.")


def _add_import_arguments(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("--stl", required=True, help="Input STL file path.")
    sub.add_argument("--geo", required=True, help="Output .geo file path.")


def _add_export_arguments(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("--geo", required=True, help="Input .geo file path.")
    sub.add_argument("--stl", required=True, help="Output STL file path.")
    sub.add_argument("--reverse-winding", action="store_true", help="Flip triangle winding on export.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="houdinigeo", description="Houdini .geo read/write CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    info_parser = subparsers.add_parser("info", help="Print a summary of a .geo file.")
    _add_info_arguments(info_parser)

    reformat_parser = subparsers.add_parser("reformat", help="Decode a .geo file and write it back out.")
    _add_reformat_arguments(reformat_parser)

    import_parser = subparsers.add_parser("import-stl", help="Convert an STL mesh into a .geo file.")
    _add_import_arguments(import_parser)

    export_parser = subparsers.add_parser("export-stl", help="Convert the polygons of a .geo file into STL.")
    _add_export_arguments(export_parser)

    return parser


def summarize(document: Document) -> list[str]:
    lines = [
        f"fileversion  {document.file_version}",
        f"points       {document.point_count}",
        f"vertices     {document.vertex_count}",
        f"primitives   {document.prim_count} "
        f"(poly {len(document.poly_primitives)}, nurbs {len(document.nurbs_primitives)})",
    ]
    for key, owner in ATTRIBUTE_OWNER_KEYS.items():
        attrs = [a for a in document.attributes if a.owner is owner]
        if attrs:
            desc = ", ".join(f"{a.name}:{a.type.value}[{a.tuple_size}]" for a in attrs)
            lines.append(f"{key:<20} {desc}")
    for group in document.point_groups:
        lines.append(f"pointgroup   {group.name} ({len(group.ids)} points)")
    return lines


def _run_info(args: argparse.Namespace) -> None:
    document = load_geo(args.geo)
    print(f"[info] {args.geo}")
    for line in summarize(document):
        print(f"  {line}")


def _run_reformat(args: argparse.Namespace) -> None:
    document = load_geo(args.geo)
    written = save_geo(document, args.out)
    print(f"[reformat] wrote {written}")


def _run_import(args: argparse.Namespace) -> None:
    document = load_stl(args.stl)
    written = save_geo(document, args.geo)
    print(f"[import-stl] wrote {written}")


def _run_export(args: argparse.Namespace) -> None:
    document = load_geo(args.geo)
    _ensure_parent(args.stl)
    save_stl(document, args.stl, reverse_winding=bool(args.reverse_winding))
    print(f"[export-stl] wrote {args.stl}")


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "info":
        _run_info(args)
    elif args.command == "reformat":
        _run_reformat(args)
    elif args.command == "import-stl":
        _run_import(args)
    elif args.command == "export-stl":
        _run_export(args)
    else:
        parser.error(f"Unknown command: {args.command}")


if __name__ == "__main__":
    main()
