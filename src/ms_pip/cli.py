import argparse
import json
import logging
import sys
from pathlib import Path

from .errors import MissingInputFileError
from .propagation import PIPConfig, propagate_from_directory
from .scoring import Normalization


def _add_propagate_parser(sub):
    p = sub.add_parser("propagate", help="Propagate peptide identities across runs of a MaxQuant txt directory")
    p.add_argument("path_txt", type=str, help="MaxQuant txt directory (evidence.txt, allPeptides.txt)")
    p.add_argument("--out", type=str, required=True, help="Output table (.tsv/.txt tab-separated, else CSV)")
    p.add_argument("--k", type=int, default=10, help="Nearest neighbours per identification")
    p.add_argument("--thresh", type=float, default=0.0, help="Discard propagations with probability <= thresh")
    p.add_argument("--weights", action="store_true", help="Report probabilities as a weight column")
    p.add_argument("--tims-ms", dest="tims_ms", action="store_true", help="Data acquired by TIMS-MS")
    p.add_argument(
        "--normalization",
        type=str,
        default=Normalization.MASKED_SUM.value,
        choices=[m.value for m in Normalization],
    )
    p.add_argument("--n-jobs", dest="n_jobs", type=int, default=1, help="Parallel workers across runs")
    p.add_argument("--no-manifest", dest="no_manifest", action="store_true", help="Do not write a run manifest")
    p.add_argument("--log-level", dest="log_level", type=str, default="INFO")
    return p


def _manifest_path(out: Path) -> Path:
    return out.with_name(f"{out.stem}.run_manifest.json")


def _write_table(table, out: Path) -> None:
    out.parent.mkdir(parents=True, exist_ok=True)
    if out.suffix.lower() in {".tsv", ".txt"}:
        table.to_csv(out, sep="\t", index=False)
    else:
        table.to_csv(out, index=False)


def main(argv=None):
    argv = argv if argv is not None else sys.argv[1:]
    ap = argparse.ArgumentParser(prog="ms-pip", description="Peptide Identity Propagation for LC–MS proteomics")
    sub = ap.add_subparsers(dest="cmd", required=True)
    _add_propagate_parser(sub)
    args = ap.parse_args(argv)

    logging.basicConfig(level=str(args.log_level).upper(), format="%(asctime)s %(levelname)s %(message)s")

    if args.cmd == "propagate":
        cfg = PIPConfig(
            k=args.k,
            thresh=args.thresh,
            skip_weights=not args.weights,
            tims_ms=args.tims_ms,
            normalization=args.normalization,
            n_jobs=args.n_jobs,
        )
        try:
            res = propagate_from_directory(args.path_txt, cfg)
        except MissingInputFileError as e:
            print(str(e), file=sys.stderr)
            return 2

        out = Path(args.out)
        _write_table(res.table, out)
        print(f"wrote {out} with {len(res.table)} rows ({res.diagnostics.n_retained} propagated)")

        if not args.no_manifest:
            from . import __version__

            payload = {
                "command": "propagate",
                "ms_pip_version": __version__,
                "path_txt": str(args.path_txt),
                "out": str(out),
                "parameters": {
                    "k": cfg.k,
                    "thresh": cfg.thresh,
                    "skip_weights": cfg.skip_weights,
                    "tims_ms": cfg.tims_ms,
                    "normalization": cfg.normalization,
                    "n_jobs": cfg.n_jobs,
                },
                "n_rows": int(len(res.table)),
                "diagnostics": res.diagnostics.as_dict(),
            }
            _manifest_path(out).write_text(json.dumps(payload, indent=2))
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
