from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from core.midi_encoder import DEFAULT_BPM, DEFAULT_TICKS_PER_QUARTER_NOTE, encode_midi
from core.midi_inspect import midi_to_notes, summarize_midi
from core.quantize import RESOLUTIONS, quantize_notes
from core.scales import DEFAULT_KEY_NAME, DEFAULT_SCALE_NAME, get_key, get_scale, notes_in_scale_for_key
from core.utils import ensure_dir, export_filename, load_notes_file

from melody_sketch.api_client import ContractError, HTTPError, MelodySketchClient, NetworkError


# exit codes (keep stable)
EXIT_OK = 0
EXIT_NETWORK_OR_HTTP = 4
EXIT_BAD_ARGS = 5

DEFAULT_BASE_URL = "http://127.0.0.1:8000"


def _print_err(msg: str) -> None:
    print(msg, file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="melody-sketch", description="Melody Sketch CLI (local MIDI tools + API client)")
    sub = p.add_subparsers(dest="cmd", required=True)

    # ------------------------------------------------------------
    # encode: notes.json -> .mid (no server)
    # ------------------------------------------------------------
    e = sub.add_parser("encode", help="Local export: notes JSON -> MIDI file")
    e.add_argument("notes", type=str, help="Path to notes JSON (list, or object with 'notes')")
    e.add_argument("--out", type=str, default="", help="Output .mid path (default: <out-dir>/melody-sketch-<date>.mid)")
    e.add_argument("--out-dir", dest="out_dir", default=".", help="Output directory")
    e.add_argument("--bpm", type=float, default=None, help="Tempo (overrides the file; default 120)")
    e.add_argument("--ppq", type=int, default=None, help="Ticks per quarter note (overrides the file; default 96)")
    e.add_argument(
        "--on-invalid",
        dest="on_invalid",
        default="raise",
        choices=["raise", "skip"],
        help="Invalid notes: fail (raise) or drop with a warning (skip)",
    )

    # ------------------------------------------------------------
    # export: notes.json -> server -> .mid
    # ------------------------------------------------------------
    x = sub.add_parser("export", help="Server export: POST /export/midi and save the file")
    x.add_argument("notes", type=str, help="Path to notes JSON")
    x.add_argument("--base-url", dest="base_url", default=DEFAULT_BASE_URL, help="Server base url")
    x.add_argument("--out-dir", dest="out_dir", default=".", help="Output directory")
    x.add_argument("--bpm", type=float, default=None, help="Tempo (overrides the file)")

    # ------------------------------------------------------------
    # inspect: .mid -> summary JSON
    # ------------------------------------------------------------
    i = sub.add_parser("inspect", help="Summarize a MIDI file")
    i.add_argument("midi", type=str, help="Path to MIDI file")
    i.add_argument("--notes", action="store_true", help="Also list decoded notes (ms)")
    i.add_argument("--bpm", type=float, default=DEFAULT_BPM, help="Tempo used to convert ticks to ms")

    # ------------------------------------------------------------
    # scale: print the notes of a key + scale
    # ------------------------------------------------------------
    s = sub.add_parser("scale", help="List MIDI notes in a key + scale")
    s.add_argument("--key", default=DEFAULT_KEY_NAME, help="Key, e.g. C, F#, Bb")
    s.add_argument("--scale", default=DEFAULT_SCALE_NAME, help="Scale name, e.g. Major, Dorian")

    # ------------------------------------------------------------
    # quantize: snap start times (local)
    # ------------------------------------------------------------
    q = sub.add_parser("quantize", help="Snap note start times to a grid")
    q.add_argument("notes", type=str, help="Path to notes JSON")
    q.add_argument("--bpm", type=float, default=None, help="Tempo (default: file bpm or 120)")
    q.add_argument("--resolution", type=int, default=16, choices=list(RESOLUTIONS), help="Grid steps per whole note")
    q.add_argument("--out", type=str, default="", help="Output .json path (default: <input>.quantized.json)")

    return p


# -------------------------------
# Commands
# -------------------------------
def cmd_encode(args: argparse.Namespace) -> int:
    try:
        req = load_notes_file(args.notes)
        bpm = args.bpm if args.bpm is not None else (req.bpm if req.bpm is not None else DEFAULT_BPM)
        ppq = args.ppq if args.ppq is not None else req.ticks_per_quarter_note
        if ppq is None:
            ppq = DEFAULT_TICKS_PER_QUARTER_NOTE

        data = encode_midi(req.notes, ppq, bpm, on_invalid=args.on_invalid)

        out_path = Path(args.out) if args.out else Path(args.out_dir) / export_filename()
        out_path = out_path.resolve()
        ensure_dir(out_path.parent)
        out_path.write_bytes(data)
        print(str(out_path))
        return EXIT_OK
    except (FileNotFoundError, ValueError) as e:
        # MidiEncodeError is a ValueError
        _print_err(str(e))
        return EXIT_BAD_ARGS


def cmd_export(args: argparse.Namespace) -> int:
    client = MelodySketchClient(base_url=args.base_url)
    try:
        req = load_notes_file(args.notes)
        bpm = args.bpm if args.bpm is not None else req.bpm
        result = client.export_midi(req.notes, bpm=bpm, ticks_per_quarter_note=req.ticks_per_quarter_note)
        dest = result.save(Path(args.out_dir), overwrite=True)
        print(f"exported: {dest.resolve()} ({len(result.content)} bytes)")
        return EXIT_OK
    except (NetworkError, HTTPError) as e:
        _print_err(str(e))
        return EXIT_NETWORK_OR_HTTP
    except ContractError as e:
        _print_err(f"Contract error: {e}")
        return EXIT_NETWORK_OR_HTTP
    except (FileNotFoundError, ValueError) as e:
        _print_err(str(e))
        return EXIT_BAD_ARGS
    finally:
        client.close()


def cmd_inspect(args: argparse.Namespace) -> int:
    midi_path = Path(args.midi)
    if not midi_path.exists() or not midi_path.is_file():
        _print_err(f"midi not found: {midi_path}")
        return EXIT_BAD_ARGS

    try:
        data = midi_path.read_bytes()
        summary = summarize_midi(data)
        if args.notes:
            summary["note_list"] = [n.model_dump(by_alias=True) for n in midi_to_notes(data, bpm=args.bpm)]
    except ValueError as e:
        _print_err(str(e))
        return EXIT_BAD_ARGS

    print(json.dumps(summary, ensure_ascii=False, indent=2))
    return EXIT_OK


def cmd_scale(args: argparse.Namespace) -> int:
    try:
        key = get_key(args.key)
        scale = get_scale(args.scale)
    except KeyError as e:
        _print_err(str(e.args[0]))
        return EXIT_BAD_ARGS

    notes = notes_in_scale_for_key(key, scale)
    print(f"{key.name} {scale.name}: {' '.join(str(n) for n in notes)}")
    return EXIT_OK


def cmd_quantize(args: argparse.Namespace) -> int:
    in_path = Path(args.notes).resolve()
    if args.out:
        out_path = Path(args.out).resolve()
    else:
        out_path = in_path.with_name(f"{in_path.stem}.quantized.json")

    try:
        req = load_notes_file(in_path)
        bpm = args.bpm if args.bpm is not None else (req.bpm if req.bpm is not None else DEFAULT_BPM)
        notes = quantize_notes(req.notes, bpm, args.resolution)
    except (FileNotFoundError, ValueError) as e:
        _print_err(str(e))
        return EXIT_BAD_ARGS

    out = {"bpm": bpm, "notes": [n.model_dump(by_alias=True, exclude_none=True) for n in notes]}
    if req.ticks_per_quarter_note is not None:
        out["ticksPerQuarterNote"] = req.ticks_per_quarter_note
    ensure_dir(out_path.parent)
    out_path.write_text(json.dumps(out, ensure_ascii=False, indent=2), encoding="utf-8")
    print(str(out_path))
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "encode":
        return cmd_encode(args)
    if args.cmd == "export":
        return cmd_export(args)
    if args.cmd == "inspect":
        return cmd_inspect(args)
    if args.cmd == "scale":
        return cmd_scale(args)
    if args.cmd == "quantize":
        return cmd_quantize(args)

    _print_err("Unknown command.")
    return EXIT_BAD_ARGS


if __name__ == "__main__":
    raise SystemExit(main())
