import streamlit as st
from pathlib import Path

from posterhub import __version__, config
from posterhub.poster import AspectRatio, canvas_size

# -------------------------
# Streamlit config (MUSS früh)
# -------------------------
st.set_page_config(page_title="Poster Hub", layout="wide")
config.configure_logging()

# -------------------------
# Helpers
# -------------------------
def _fonts_found(fonts_dir: Path) -> list[str]:
    if not fonts_dir.exists():
        return []
    return sorted(p.name for p in fonts_dir.glob("*.ttf"))


def _recent_outputs(output_dir: Path, n: int = 6) -> list[Path]:
    if not output_dir.exists():
        return []
    files = sorted(output_dir.glob("poster_*.png"), key=lambda p: p.stat().st_mtime, reverse=True)
    return files[:n]

# ============================================================
# Sidebar
# ============================================================
with st.sidebar:
    st.markdown("## ⚙️ Setup")

    if config.GEMINI_API_KEY:
        st.success("Gemini API-Key gesetzt")
    else:
        st.warning("Kein GEMINI_API_KEY: Hintergrund-Generierung fällt aus, Verlauf wird genutzt.")
    st.caption(f"Modell: {config.GEMINI_IMAGE_MODEL}")

    st.divider()
    st.markdown("## 🔤 Fonts")
    fonts = _fonts_found(config.FONTS_DIR)
    if fonts:
        st.code("\n".join(fonts))
    else:
        st.info(f"Keine TTFs in {config.FONTS_DIR}. Pillow-Default-Font wird genutzt.")

# ============================================================
# Main
# ============================================================
st.title("🧰 Poster Hub")
st.caption(f"Tools: Poster Studio (links im Menü) · v{__version__}")

st.markdown("### Formate")
cols = st.columns(len(AspectRatio))
for col, ratio in zip(cols, AspectRatio):
    w, h = canvas_size(ratio)
    col.metric(ratio.value, f"{w}×{h}")

st.markdown("### Zuletzt exportiert")
recent = _recent_outputs(config.OUTPUT_DIR)
if not recent:
    st.info("Noch keine Exporte. CLI: `python -m posterhub.poster render config.json`")
else:
    img_cols = st.columns(3)
    for i, p in enumerate(recent):
        img_cols[i % 3].image(str(p), caption=p.name, use_container_width=True)
