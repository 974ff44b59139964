"""Command line entry point."""

import json

from PIL import Image

from posterhub.poster.__main__ import build_parser, main
from posterhub.poster.model import PosterDocument


def test_defaults_prints_document_json(capsys):
    assert main(["defaults"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["aspectRatio"] == "9:16"
    assert PosterDocument.from_dict(data).brand_name == "Aaiena"


def test_render_writes_png_and_prints_path(tmp_path, capsys):
    doc = PosterDocument(aspect_ratio="1:1", logo_url="")
    cfg = tmp_path / "poster.json"
    cfg.write_text(json.dumps(doc.to_dict()), encoding="utf-8")

    rc = main(["render", str(cfg), "--out", "cli.png", "--output-dir", str(tmp_path / "out")])
    assert rc == 0
    out = tmp_path / "out" / "cli.png"
    assert capsys.readouterr().out.strip() == str(out)
    assert Image.open(out).size == (1080, 1080)


def test_parser_flags():
    args = build_parser().parse_args(["render", "c.json", "--preview", "--background", "bg.png"])
    assert args.preview is True
    assert args.background == "bg.png"
