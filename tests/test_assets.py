from pathlib import Path

from PIL import Image

from inkpot.asset_processors import (
    ImageOptimizer,
    JSMinifier,
    ProcessorChain,
    VerbatimCopy,
    processors_for_config,
)
from inkpot.assets import AssetPipeline
from inkpot.content import StaticFile


def test_image_optimizer(tmp_path):
    optimizer = ImageOptimizer()
    assert optimizer.accepts(Path("photo.JPG"))
    assert optimizer.accepts(Path("diagram.png"))
    assert not optimizer.accepts(Path("notes.txt"))

    source = tmp_path / "source.png"
    dest = tmp_path / "out" / "source.png"
    Image.new("RGB", (10, 10), color="red").save(source)

    assert ProcessorChain([optimizer]).write(source, dest)
    with Image.open(dest) as img:
        assert img.size == (10, 10)
    assert dest.stat().st_size <= source.stat().st_size


def test_image_optimizer_copies_undecodable_files(tmp_path, capsys):
    source = tmp_path / "broken.png"
    source.write_text("not really a png", encoding="utf-8")
    dest = tmp_path / "broken-out.png"
    ImageOptimizer().write(source, dest)
    assert dest.read_text(encoding="utf-8") == "not really a png"
    assert "Could not optimize broken.png" in capsys.readouterr().out


def test_js_minifier(tmp_path):
    minifier = JSMinifier()
    assert minifier.accepts(Path("app.js"))
    assert not minifier.accepts(Path("vendor.min.js"))

    source = tmp_path / "app.js"
    source.write_text("function add(a, b) {\n  // sum\n  return a + b;\n}\n", encoding="utf-8")
    dest = tmp_path / "app.out.js"
    minifier.write(source, dest)
    minified = dest.read_text(encoding="utf-8")
    assert "// sum" not in minified
    assert "return a+b" in minified


def test_chain_orders_by_priority():
    chain = ProcessorChain()
    chain.add(VerbatimCopy())
    chain.add(JSMinifier())
    chain.add(ImageOptimizer())
    assert isinstance(chain.select(Path("a.js")), JSMinifier)
    assert isinstance(chain.select(Path("a.png")), ImageOptimizer)
    assert isinstance(chain.select(Path("a.min.js")), VerbatimCopy)
    assert ProcessorChain().write(Path("a.txt"), Path("b.txt")) is False


def test_processors_for_config():
    default = processors_for_config({})
    assert isinstance(default.select(Path("a.js")), JSMinifier)
    assert isinstance(default.select(Path("a.png")), VerbatimCopy)

    tuned = processors_for_config({"minify_js": False, "optimize_images": True})
    assert isinstance(tuned.select(Path("a.js")), VerbatimCopy)
    assert isinstance(tuned.select(Path("a.png")), ImageOptimizer)


def test_asset_pipeline_preserves_layout(tmp_path):
    root = tmp_path / "site"
    js = root / "assets" / "js" / "app.js"
    css = root / "assets" / "css" / "style.css"
    js.parent.mkdir(parents=True)
    css.parent.mkdir(parents=True)
    js.write_text("var  answer = 42 ;", encoding="utf-8")
    css.write_text("body { margin: 0; }", encoding="utf-8")
    statics = [StaticFile(path=p, relative_path=p.relative_to(root)) for p in (js, css)]

    out = tmp_path / "_site"
    written = AssetPipeline(out, {}).run(statics)
    assert written == [out / "assets" / "js" / "app.js", out / "assets" / "css" / "style.css"]
    assert (out / "assets" / "css" / "style.css").read_text(encoding="utf-8") == "body { margin: 0; }"
    assert "answer=42" in (out / "assets" / "js" / "app.js").read_text(encoding="utf-8")
    assert statics[0].url == "/assets/js/app.js"
