# Optional: load .env locally. Safe on Streamlit Cloud even if python-dotenv isn't installed.
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass

import os
import sys
import logging
from pathlib import Path

# -------------------------------------------------------------------
# Ensure local modules are importable on Streamlit Cloud
# -------------------------------------------------------------------
APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import streamlit as st

from autosave import Debouncer
from catalog import DEFAULT_GLYPH, effective_default_questions
from charts import evolution_figure, pillar_bar_figure
from coefficients import (
    COEFFICIENT_MAX, COEFFICIENT_MIN, COEFFICIENT_STEP, PILLAR_PRESETS, QUESTION_PRESETS,
    clamp_coefficient, customized_keys, importance_label, mean_pillar_coefficient, simulate_score_impact,
)
from config import load_settings
from db import SqliteStore
from logging_utils import configure_logging
from pdf_export import evolution_to_pdf_bytes
from questions import BUILTIN_PILLAR_IDS, default_questions
from remote_store import RemoteMirror
from reporting import (
    PERIODS, average_score, best_day, build_headlines, build_insights, date_range,
    coefficient_recommendations, evolution_history, trend,
)
from scoring import PILLAR_WEIGHTED, QUESTION_WEIGHTED, question_key
from wellness_store import WellnessRepository

logger = logging.getLogger(__name__)


# -------------------- CONFIG --------------------
st.set_page_config(page_title="Mon Bien-être", page_icon="🌱", layout="centered")


def _get_setting(key: str):
    try:
        return str(st.secrets[key])
    except Exception:
        return os.getenv(key)


SETTINGS = load_settings(_get_setting)
configure_logging(SETTINGS.log_level, SETTINGS.log_format)


@st.cache_resource(show_spinner=False)
def get_repository() -> WellnessRepository:
    mirror = None
    if SETTINGS.remote_enabled:
        mirror = RemoteMirror(SETTINGS.remote_url, SETTINGS.remote_token, SETTINGS.remote_timeout)
    logger.info("repository ready (db=%s, mirroring=%s)", SETTINGS.db_path, mirror is not None)
    return WellnessRepository(SqliteStore(SETTINGS.db_path), mirror=mirror, user_id=SETTINGS.user_id)


repo = get_repository()


# -------------------- HELPERS --------------------
def _report(result, success: str = ""):
    # Remote outcomes arrive later, through _show_sync_warning on a following run.
    if result is not None and result.warning:
        st.warning(result.warning)
    elif success:
        st.success(success)


def _show_sync_warning():
    warning = repo.sync_warning()
    if warning:
        st.warning(warning)


def _forget_widgets(prefix: str):
    # Keyed sliders keep their last value across reruns; drop them so stored values show.
    for k in [k for k in st.session_state if str(k).startswith(prefix)]:
        del st.session_state[k]


def _autosaver() -> Debouncer:
    # The timer thread cannot draw, so it leaves a failure for the next rerun.
    if "autosaver" not in st.session_state:
        outcome = {}

        def failed(e):
            outcome["error"] = e

        st.session_state["autosave_outcome"] = outcome
        st.session_state["autosaver"] = Debouncer(repo.save_today, delay=SETTINGS.autosave_delay, on_error=failed)
    return st.session_state["autosaver"]


def _collect_responses(catalog):
    data = {}
    for entry in catalog:
        data[entry.pillar_id] = [
            int(st.session_state.get(f"q_{entry.pillar_id}_{i}", 0)) for i in range(len(entry.questions))
        ]
    return data


def _score_color(score: int) -> str:
    if score >= 80:
        return "🟢"
    if score >= 60:
        return "🟡"
    if score >= 40:
        return "🟠"
    return "🔴"


# -------------------- JOURNAL --------------------
def render_journal():
    catalog = repo.resolve_catalog()
    names = repo.pillar_display_names()
    today = repo.get_day() or {}

    st.header("📝 Journal du jour")
    st.caption(f"Date : {repo.today_key()}")

    error = st.session_state.get("autosave_outcome", {}).pop("error", None)
    if error is not None:
        st.error(f"Enregistrement automatique impossible : {error}")

    saver = _autosaver()
    for entry in catalog:
        if not entry.questions:
            continue
        with st.expander(names.get(entry.pillar_id, entry.pillar_id), expanded=True):
            saved = today.get(entry.pillar_id)
            if not isinstance(saved, list):
                saved = []
            for i, text in enumerate(entry.questions):
                initial = saved[i] if i < len(saved) and isinstance(saved[i], (int, float)) else 50
                st.slider(
                    text, 0, 100, int(initial), step=5,
                    key=f"q_{entry.pillar_id}_{i}",
                    on_change=lambda: saver.schedule(_collect_responses(catalog)),
                )

    data = _collect_responses(catalog)
    if st.button("💾 Enregistrer", type="primary"):
        saver.cancel()
        _report(repo.save_today(data), "Journal enregistré.")

    strategy = repo.strategy(QUESTION_WEIGHTED)
    scores = strategy.pillar_scores(data)
    overall = strategy.global_score(data)

    st.divider()
    st.metric("Score global", f"{overall}%")
    st.plotly_chart(pillar_bar_figure(scores, names), use_container_width=True)

    headlines = build_headlines(scores, overall)
    c1, c2 = st.columns(2)
    with c1:
        st.markdown("**Points forts**")
        for pid, s in headlines["top"]:
            st.markdown(f"- {_score_color(s)} {names.get(pid, pid)} : {s}%")
    with c2:
        st.markdown("**À travailler**")
        for pid, s in headlines["bottom"]:
            st.markdown(f"- {_score_color(s)} {names.get(pid, pid)} : {s}%")


# -------------------- EVOLUTION --------------------
def render_evolution():
    st.header("📈 Évolution")
    names = repo.pillar_display_names()

    c1, c2, c3 = st.columns(3)
    period = c1.radio("Période", PERIODS, format_func=lambda d: f"{d} jours", horizontal=True)
    area = c2.toggle("Aires", value=False)
    show_pillars = c3.toggle("Piliers", value=False)

    if repo.mirroring and st.button("🔄 Rafraîchir depuis le cloud"):
        n = repo.refresh_from_remote(date_range(period))
        st.info(f"{n} jour(s) mis à jour.")

    history = evolution_history(repo.get_entries(), repo.strategy(QUESTION_WEIGHTED), days=period)
    insights = build_insights(history, period, names)
    avg = average_score(history)
    tr = trend(history)
    best = best_day(history)

    m1, m2, m3 = st.columns(3)
    m1.metric("Score moyen", f"{avg}%")
    m2.metric("Tendance", f"{tr['value']:+d}")
    m3.metric("Meilleur jour", f"{best['score']}%" if best else "-", best["label"] if best else None)

    st.plotly_chart(evolution_figure(history, names, show_pillars=show_pillars, area=area), use_container_width=True)

    st.subheader(f"Insights des {period} derniers jours")
    for ins in insights:
        with st.container(border=True):
            st.markdown(f"**{ins['title']}**")
            st.caption(ins["description"])

    summary = {
        "average": f"{avg}%",
        "trend": f"{tr['value']:+d}",
        "best": f"{best['label']} ({best['score']}%)" if best else "",
    }
    st.download_button(
        "Exporter en PDF",
        data=evolution_to_pdf_bytes(history, insights, names, summary),
        file_name=f"bien-etre-{repo.today_key()}.pdf",
        mime="application/pdf",
    )


# -------------------- QUESTIONNAIRE --------------------
def render_pillars():
    questions, pillars = repo.get_custom()
    st.subheader("Piliers personnalisés")

    with st.form("add_pillar", clear_on_submit=True):
        c1, c2 = st.columns([3, 1])
        name = c1.text_input("Nom du pilier")
        glyph = c2.text_input("Emoji", value=DEFAULT_GLYPH)
        if st.form_submit_button("Ajouter le pilier"):
            try:
                created = repo.add_custom_pillar(name, glyph)
                st.success(f"Le pilier « {created.name} » a été créé.")
                st.rerun()
            except ValueError as e:
                st.error(str(e))

    if not pillars:
        st.info("Aucun pilier personnalisé.")
    for p in pillars:
        count = sum(1 for q in questions if q.pillar_id == p.id)
        with st.container(border=True):
            c1, c2 = st.columns([4, 1])
            c1.markdown(f"**{p.glyph} {p.name}** · {count} question(s)")
            if c2.button("Supprimer", key=f"del_pillar_{p.id}"):
                _report(repo.delete_custom_pillar(p.id), "Pilier et questions supprimés.")
                st.rerun()


def render_custom_questions():
    questions, _ = repo.get_custom()
    names = repo.pillar_display_names()
    st.subheader("Questions personnalisées")

    with st.form("add_question", clear_on_submit=True):
        text = st.text_input("Question")
        pid = st.selectbox("Pilier", list(names), format_func=lambda k: names[k])
        if st.form_submit_button("Ajouter la question"):
            try:
                repo.add_custom_question(pid, text)
                st.success("Question ajoutée.")
                st.rerun()
            except ValueError as e:
                st.error(str(e))

    for q in questions:
        with st.container(border=True):
            c1, c2 = st.columns([4, 1])
            c1.markdown(f"{q.text}  \n<small>{names.get(q.pillar_id, q.pillar_id)}</small>", unsafe_allow_html=True)
            if c2.button("Supprimer", key=f"del_q_{q.id}"):
                _report(repo.delete_custom_question(q.id), "Question supprimée.")
                st.rerun()


def render_default_questions():
    overrides = repo.get_overrides()
    names = repo.pillar_display_names()
    st.subheader("Questions par défaut")
    st.caption(
        "Les coefficients et les réponses sont liés à la position des questions : "
        "insérer ou réordonner une question décale ceux qui suivent."
    )

    for entry in effective_default_questions(overrides):
        pid = entry.pillar_id
        modified = pid in overrides
        label = names.get(pid, pid) + (" · modifié" if modified else "")
        with st.expander(label):
            with st.form(f"override_{pid}"):
                text = st.text_area("Une question par ligne", value="\n".join(entry.questions), height=140)
                c1, c2 = st.columns(2)
                if c1.form_submit_button("Enregistrer"):
                    _report(repo.set_default_questions(pid, text.splitlines()), "Questions mises à jour.")
                    st.rerun()
                if c2.form_submit_button("Restaurer", disabled=not modified):
                    _report(repo.reset_default_questions(pid), "Questions restaurées.")
                    st.rerun()
            if modified:
                st.caption(f"{len(default_questions(pid))} question(s) à l'origine.")


def _save_question_coefficient(key: str):
    repo.set_question_coefficient(key, clamp_coefficient(st.session_state[f"coef_{key}"]))


def render_question_coefficients():
    catalog = repo.resolve_catalog()
    names = repo.pillar_display_names()
    coefficients = repo.get_question_coefficients()
    st.subheader("Coefficients des questions")

    cols = st.columns(len(QUESTION_PRESETS))
    for col, (key, preset) in zip(cols, QUESTION_PRESETS.items()):
        if col.button(f"{preset['icon']} {preset['name']}", help=preset["description"], key=f"qp_{key}"):
            _report(repo.apply_question_preset(key), f"Preset « {preset['name']} » appliqué.")
            _forget_widgets("coef_")
            st.rerun()

    st.caption(f"{len(customized_keys(coefficients))} coefficient(s) personnalisé(s).")
    if st.button("Réinitialiser les coefficients"):
        _report(repo.reset_question_coefficients(), "Coefficients réinitialisés.")
        _forget_widgets("coef_")
        st.rerun()

    for entry in catalog:
        if not entry.questions:
            continue
        mean = mean_pillar_coefficient(entry, coefficients)
        with st.expander(f"{names.get(entry.pillar_id, entry.pillar_id)} · moyenne {mean:.1f}x"):
            for i, text in enumerate(entry.questions):
                key = question_key(entry.pillar_id, i)
                current = clamp_coefficient(coefficients.get(key, 1.0))
                st.slider(
                    f"{text} ({importance_label(current)})",
                    COEFFICIENT_MIN, COEFFICIENT_MAX, current, step=COEFFICIENT_STEP, key=f"coef_{key}",
                    on_change=_save_question_coefficient, args=(key,),
                )


def render_preview():
    catalog = repo.resolve_catalog()
    names = repo.pillar_display_names()
    strategy = repo.strategy(QUESTION_WEIGHTED)
    st.subheader("Aperçu")
    st.caption("Simulez des réponses pour voir l'effet de vos coefficients. Rien n'est enregistré.")

    responses = {}
    for entry in catalog:
        if not entry.questions:
            continue
        responses[entry.pillar_id] = [
            st.slider(text, 0, 100, 50, step=5, key=f"preview_{entry.pillar_id}_{i}")
            for i, text in enumerate(entry.questions)
        ]
    st.metric("Score global simulé", f"{strategy.global_score(responses)}%")
    for pid, s in strategy.pillar_scores(responses).items():
        st.markdown(f"- {names.get(pid, pid)} : {s}%")


def render_questionnaire():
    st.header("🛠️ Questionnaire")
    tabs = st.tabs(["Piliers", "Questions", "Questions par défaut", "Coefficients", "Aperçu"])
    with tabs[0]:
        render_pillars()
    with tabs[1]:
        render_custom_questions()
    with tabs[2]:
        render_default_questions()
    with tabs[3]:
        render_question_coefficients()
    with tabs[4]:
        render_preview()

    st.divider()
    if st.button("Tout réinitialiser", help="Supprime piliers, questions et coefficients personnalisés."):
        _report(repo.reset_customizations(), "Personnalisations supprimées.")
        _forget_widgets("coef_")
        st.rerun()


# -------------------- PILLAR COEFFICIENTS (legacy) --------------------
def render_pillar_coefficients():
    st.header("⚖️ Coefficients d'importance")
    st.caption("Pondération par pilier, utilisée par le score global historique.")
    names = repo.pillar_display_names()
    pillar_ids = list(names)
    coefficients = repo.get_pillar_coefficients()

    cols = st.columns(len(PILLAR_PRESETS))
    for col, (key, preset) in zip(cols, PILLAR_PRESETS.items()):
        if col.button(preset["name"], help=preset["description"], key=f"pp_{key}"):
            _report(repo.apply_pillar_preset(key), f"Preset « {preset['name']} » appliqué.")
            _forget_widgets("pc_")
            st.rerun()

    candidate = {}
    for pid in pillar_ids:
        current = clamp_coefficient(coefficients.get(pid, 1.0))
        candidate[pid] = st.slider(
            f"{names[pid]} ({importance_label(current)})",
            COEFFICIENT_MIN, COEFFICIENT_MAX, current, step=COEFFICIENT_STEP, key=f"pc_{pid}",
        )

    today = repo.get_day()
    impact = simulate_score_impact(today, pillar_ids, coefficients, candidate)
    st.metric("Score global (pondéré par pilier)", f"{impact['after']}%", impact["difference"] or None)

    c1, c2 = st.columns(2)
    if c1.button("Enregistrer", type="primary"):
        _report(repo.save_pillar_coefficients({k: clamp_coefficient(v) for k, v in candidate.items()}), "Coefficients enregistrés.")
    if c2.button("Valeurs par défaut"):
        _report(repo.reset_pillar_coefficients(), "Coefficients réinitialisés.")
        _forget_widgets("pc_")
        st.rerun()

    recs = coefficient_recommendations(today, pillar_ids)
    if recs:
        st.subheader("Suggestions")
        for r in recs:
            st.markdown(f"- **{r['suggestion']}** : {r['reason']}")

    if today:
        legacy = repo.strategy(PILLAR_WEIGHTED)
        st.caption(f"Score du jour (pondéré par pilier) : {legacy.global_score(today)}%")


# -------------------- SIDEBAR --------------------
with st.sidebar:
    st.header("🌱 Mon Bien-être")
    page = st.radio("Aller à", ["Journal", "Évolution", "Questionnaire", "Coefficients"], index=0)
    _show_sync_warning()

    st.divider()
    if repo.mirroring:
        st.caption(f"☁️ Synchronisé · {SETTINGS.user_id}")
        if st.button("Envoyer les données locales"):
            counts = repo.sync_local_to_remote()
            if counts["failed"]:
                st.warning(f"{counts['pushed']} envoyé(s), {counts['failed']} en échec.")
            else:
                st.success(f"{counts['pushed']} document(s) envoyé(s).")
        if st.button("Récupérer les réglages"):
            if repo.refresh_settings_from_remote():
                st.rerun()
            st.info("Aucun réglage distant.")
    else:
        st.caption("💾 Stockage local uniquement")
    st.caption(f"{len(BUILTIN_PILLAR_IDS)} piliers intégrés")


# -------------------- ROUTING --------------------
if page == "Évolution":
    render_evolution()
elif page == "Questionnaire":
    render_questionnaire()
elif page == "Coefficients":
    render_pillar_coefficients()
else:
    render_journal()
