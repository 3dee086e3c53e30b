"""Streamlit UI for GeoEval: companies, projects and the evaluation dashboard."""

import html
import logging

import streamlit as st

from geoeval.core import state as dash
from geoeval.core.config import settings
from geoeval.core.evaluation import EvaluationRunner
from geoeval.core.highlight import TokenKind, target_terms_for, tokenize
from geoeval.core.metrics import MetricsConsumer
from geoeval.core.models import Provider
from geoeval.core.state import DashboardState, Status
from geoeval.services.api_client import ApiError, BackendClient
from geoeval.utils.data_prep import build_report_file

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

HIGHLIGHT_STYLES = {
    TokenKind.TARGET: "background:#d1fae5;color:#065f46;padding:0 2px;border-radius:3px;",
    TokenKind.EXTERNAL_LINK: "background:#ffe4e6;color:#9f1239;padding:0 2px;border-radius:3px;",
}
STATUS_BADGES = {
    "found": "✅ Found",
    "miss": "❌ Miss",
    "pending": "⏳ Pending",
    "loading": "🔄 Asking...",
}


def highlighted_html(text: str, target_terms) -> str:
    """Answer text as HTML with the target brand and other sites marked."""
    parts = []
    for token in tokenize(text, target_terms):
        value = html.escape(token.text)
        style = HIGHLIGHT_STYLES.get(token.kind)
        parts.append(f'<mark style="{style}">{value}</mark>' if style else value)
    return "".join(parts).replace("\n", "<br>")


# Page configuration
st.set_page_config(
    page_title="GeoEval: AI Visibility Evaluator",
    page_icon="🛡️",
    layout="wide"
)

# Session defaults
if "client" not in st.session_state:
    st.session_state.client = BackendClient()
if "metrics_consumer" not in st.session_state:
    st.session_state.metrics_consumer = MetricsConsumer(st.session_state.client)
if "page" not in st.session_state:
    st.session_state.page = "companies"

client: BackendClient = st.session_state.client
metrics_consumer: MetricsConsumer = st.session_state.metrics_consumer


def go(page: str, **params):
    st.session_state.page = page
    for key, value in params.items():
        st.session_state[key] = value
    st.rerun()


def get_dashboard() -> DashboardState:
    return st.session_state.dashboard


def put_dashboard(new_state: DashboardState):
    st.session_state.dashboard = new_state


# --- companies page ---

def render_companies():
    st.title("🏢 Companies")
    st.write("Register the businesses you track and open their projects.")

    with st.expander("➕ New company"):
        with st.form("new_company", clear_on_submit=True):
            name = st.text_input("Name")
            website = st.text_input("Website (optional)")
            description = st.text_area("Description (optional)")
            if st.form_submit_button("Create company"):
                try:
                    client.create_company(name, description=description or None, website=website or None)
                    st.success(f"Created {name}")
                except (ApiError, ValueError) as e:
                    st.error(str(e))

    try:
        companies = client.get_companies()
    except ApiError as e:
        st.error(f"Failed to load companies: {e}")
        return

    if not companies:
        st.info("No companies yet. Create one to get started.")
    for company in companies:
        col1, col2, col3 = st.columns([4, 1, 1])
        with col1:
            st.write(f"**{company.name}**")
            if company.website or company.description:
                st.caption(" · ".join(p for p in (company.website, company.description) if p))
        with col2:
            if st.button("Open", key=f"open_company_{company.id}", width='stretch'):
                go("projects", company_id=company.id)
        with col3:
            if st.button("Delete", key=f"delete_company_{company.id}", width='stretch'):
                try:
                    client.delete_company(company.id)
                    st.rerun()
                except ApiError as e:
                    st.error(str(e))


# --- projects page ---

def render_projects():
    company_id = st.session_state.get("company_id")
    try:
        company = client.get_company(company_id)
        projects = client.get_projects(company_id)
    except ApiError as e:
        st.error(f"Failed to load projects: {e}")
        if st.button("← Companies"):
            go("companies")
        return

    if st.button("← Companies"):
        go("companies")
    st.title(f"📁 {company.name}: Projects")

    with st.expander("➕ New project"):
        with st.form("new_project", clear_on_submit=True):
            name = st.text_input("Project name")
            domain = st.text_input("Domain (example.com)")
            col1, col2 = st.columns(2)
            with col1:
                nation = st.text_input("Nation", value=settings.default_nation)
            with col2:
                region = st.text_input("State (optional)")
            description = st.text_area("Description (optional)")
            if st.form_submit_button("Create project"):
                try:
                    client.create_project(
                        company_id, name, description=description or None,
                        domain=domain or None, nation=nation or None, state=region or None,
                    )
                    st.success(f"Created {name}")
                except (ApiError, ValueError) as e:
                    st.error(str(e))

    if not projects:
        st.info("No projects for this company yet.")
    for project in projects:
        col1, col2, col3 = st.columns([4, 1, 1])
        with col1:
            st.write(f"**{project.name}** · {project.domain or 'no domain'}")
            st.caption(", ".join(p for p in (project.state, project.nation) if p) or "No location")
        with col2:
            if st.button("Dashboard", key=f"open_project_{project.id}", width='stretch'):
                st.session_state.pop("dashboard", None)
                go("dashboard", project_id=project.id)
        with col3:
            if st.button("Delete", key=f"delete_project_{project.id}", width='stretch'):
                try:
                    client.delete_project(project.id)
                    st.rerun()
                except ApiError as e:
                    st.error(str(e))


# --- dashboard page ---

def load_dashboard(project_id: str) -> DashboardState:
    project = client.get_project(project_id)
    state = DashboardState(
        domain=project.domain,
        nation=project.nation or settings.default_nation,
        state=project.state or "",
        company_id=project.company_id,
        project_id=project.id or project_id,
    )
    try:
        state = dash.hydrate_from_snapshot(state, client.get_prompt_questions(project_id))
    except ApiError as e:
        logger.info(f"No existing prompt data found for project {project_id}: {e}")
    return state


def render_dashboard():
    project_id = st.session_state.get("project_id")
    if "dashboard" not in st.session_state:
        try:
            put_dashboard(load_dashboard(project_id))
        except ApiError as e:
            st.error(f"Failed to load project: {e}")
            if st.button("← Projects"):
                go("projects")
            return

    if "categories" not in st.session_state:
        try:
            st.session_state.categories = client.get_categories()
        except ApiError as e:
            logger.error(f"Failed to load categories: {e}")
            st.session_state.categories = []

    # Metrics lookup once a run is complete
    put_dashboard(metrics_consumer.check(get_dashboard()))
    state = get_dashboard()

    if st.button("← Projects"):
        go("projects")
    st.title("🛡️ GeoEval: Website Evaluator")

    # Inputs
    busy = dash.is_busy(state)
    col1, col2, col3 = st.columns(3)
    with col1:
        domain = st.text_input("Domain", value=state.domain, placeholder="example.com", disabled=busy)
    with col2:
        nation = st.text_input("Nation", value=state.nation, disabled=busy)
    with col3:
        region = st.text_input("State (optional)", value=state.state, disabled=busy)
    context = st.text_area(
        "Describe your website",
        value=state.query_context,
        placeholder="Services offered, target audience, unique selling points...",
        disabled=busy,
    )
    for field_name, value in (("domain", domain), ("nation", nation), ("state", region), ("query_context", context)):
        if value != getattr(state, field_name):
            state = dash.set_input(state, field_name, value)
    put_dashboard(state)

    progress_slot = st.empty()

    def on_update(new_state: DashboardState):
        put_dashboard(new_state)
        progress_slot.progress(new_state.progress / 100, text=f"{new_state.status.value.replace('_', ' ')}...")

    runner = EvaluationRunner(client, on_update=on_update)

    label = "Start Analysis" if state.status == Status.IDLE else "Re-Run All"
    if st.button(f"🔎 {label}", disabled=busy or not state.domain or not state.nation):
        with st.spinner("Analyzing website and generating questions..."):
            put_dashboard(runner.start(state, review_first=True))
        st.rerun()

    state = get_dashboard()
    if state.error:
        st.error(state.error)

    if state.analysis:
        render_cards(state)

    render_actions(state, runner)
    render_results(get_dashboard(), runner)

    if state.status == Status.IDLE:
        st.subheader("Evaluate Your Local Authority")
        st.write(
            "Find out whether AI assistants recommend your business in your region. "
            "Enter your domain and location to see how you rank against local competitors."
        )


def render_cards(state: DashboardState):
    summary = dash.stats(state)
    col1, col2, col3 = st.columns(3)
    with col1:
        st.caption("🎯 Local Profile")
        st.subheader(state.analysis.brand_name)
        st.write(f"📍 {state.state or 'Generic'}, {state.nation}")
        if state.analysis.niche:
            st.info(state.analysis.niche)
        if state.analysis.purpose:
            st.write(f"**Purpose:** {state.analysis.purpose}")
        services = state.analysis.services
        if services:
            st.write("**Services:**")
            for service in services[:10]:
                st.write(f"• {service}")
            if len(services) > 10:
                st.write("...etc.")
    with col2:
        st.caption("📊 Visibility Score")
        st.metric("Visibility", f"{summary['score']}%", help=f"{summary['found_count']} of {summary['total']} answers")
        st.progress(summary["score"] / 100)
        metrics = state.metrics
        if metrics is not None:
            organic = metrics.brand_agnostic_metrics
            st.write("🔍 **Brand Agnostic Metrics (Organic Discovery)**")
            m1, m2, m3 = st.columns(3)
            m1.metric("Total Prompts", organic.total_prompts)
            m2.metric("Mentions", organic.mentions)
            m3.metric("Mention Rate", f"{organic.brand_mention_rate:.1f}%")
            m4, m5, m6 = st.columns(3)
            m4.metric("Top 3 Rate", f"{organic.top_3_position_rate:.1f}%")
            m5.metric("Recommend Rate", f"{organic.recommendation_rate:.1f}%")
            m6.metric("Zero Mentions", organic.zero_mention_count)
            if metrics.brand_features:
                features = metrics.brand_features[:10]
                extra = " ...etc." if len(metrics.brand_features) > 10 else ""
                st.write("**Brand Features:** " + ", ".join(features) + extra)
        st.caption(f"Analyzing recommendations specific to {state.state or 'the region'}.")
    with col3:
        st.caption("🗂️ Processing Status")
        if state.status == Status.COMPLETED:
            st.success("Evaluation Finished")
        else:
            st.write(f"**{state.status.value.replace('_', ' ').title()}**")
        answered = sum(1 for r in state.results if r.has_answer)
        st.write(f"{answered} / {len(state.results)} questions answered")


def render_actions(state: DashboardState, runner: EvaluationRunner):
    col1, col2, col3 = st.columns([1, 1, 2])
    run_all_visible = state.status in (Status.QUESTIONS_READY, Status.COMPLETED, Status.EVALUATING)
    with col1:
        if run_all_visible and dash.has_unanswered_questions(state):
            if st.button("▶️ Run All Questions", disabled=dash.is_any_loading(state) or dash.is_busy(state)):
                with st.spinner("Asking the assistant, one question at a time..."):
                    put_dashboard(runner.run_all(state))
                st.rerun()
    with col2:
        if state.status == Status.COMPLETED and state.metrics_checked and state.question_set_id:
            label = "Recalculate Metrics" if state.metrics else "Calculate Metrics"
            if st.button(f"🧮 {label}"):
                try:
                    with st.spinner("Calculating..."):
                        put_dashboard(metrics_consumer.recalculate(state))
                    st.rerun()
                except ApiError:
                    st.error("Failed to calculate metrics. Please try again.")
        if state.metrics_date:
            st.caption(f"Last: {state.metrics_date:%Y-%m-%d %H:%M}")
    with col3:
        if state.status == Status.COMPLETED:
            built = None
            if state.results and state.metrics is not None:
                built = build_report_file(
                    state.results, state.metrics, state.brand_name, state.domain, state.state, state.nation,
                )
            st.download_button(
                "📥 Export to Excel (.xlsx)",
                data=built[1] if built else b"",
                file_name=built[0] if built else "report.xlsx",
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                disabled=built is None,
            )


def render_results(state: DashboardState, runner: EvaluationRunner):
    st.subheader("Authority Breakdown")
    st.caption("Location-specific recommendations. Edit, rerun or delete individual questions.")
    st.markdown(
        f'<mark style="{HIGHLIGHT_STYLES[TokenKind.TARGET]}">Target Website</mark> '
        f'<mark style="{HIGHLIGHT_STYLES[TokenKind.EXTERNAL_LINK]}">Other Recommendations</mark>',
        unsafe_allow_html=True,
    )

    if not state.results:
        st.info("No results yet. Enter domain and location to evaluate.")
    terms = target_terms_for(state.brand_name, state.domain)
    providers = [p.value for p in Provider]

    for result in state.results:
        with st.container(border=True):
            col1, col2, col3 = st.columns([1, 6, 1])
            with col1:
                st.caption(result.category.split(" ")[0])
                st.write(STATUS_BADGES[result.status_label])
            with col2:
                st.write(f"**{result.question}**")
                if result.has_answer:
                    st.markdown(highlighted_html(result.full_answer, terms), unsafe_allow_html=True)
                else:
                    st.caption("No answer generated yet.")
            with col3:
                current = (result.provider.value if result.provider else settings.default_provider)
                choice = st.selectbox(
                    "Provider", providers, index=providers.index(current),
                    format_func=lambda value: Provider(value).label,
                    key=f"provider_{result.id}", label_visibility="collapsed",
                )
                if choice != current:
                    put_dashboard(dash.set_provider(get_dashboard(), result.id, Provider(choice)))
                if st.button("▶️", key=f"run_{result.id}", help="Run question",
                             disabled=result.loading or not state.brand_name):
                    with st.spinner("Asking..."):
                        put_dashboard(runner.run_single(get_dashboard(), result.id, force=True))
                    st.rerun()
                if st.button("🗑️", key=f"delete_{result.id}", help="Delete question", disabled=result.loading):
                    put_dashboard(dash.delete_question(get_dashboard(), result.id))
                    st.rerun()
            with st.expander("✏️ Edit question"):
                new_text = st.text_area("Question", value=result.question, key=f"edit_{result.id}")
                if st.button("Save", key=f"save_{result.id}") and new_text.strip():
                    put_dashboard(dash.edit_question(get_dashboard(), result.id, new_text.strip()))
                    st.rerun()

    if state.analysis is None:
        return
    with st.expander("➕ Add Custom Question"):
        with st.form("add_question", clear_on_submit=True):
            text = st.text_area("Enter your custom question...")
            categories = st.session_state.get("categories") or []
            names = [c.name for c in categories] or [None]
            picked = st.selectbox("Category", names, format_func=lambda n: n or "Custom Question")
            if st.form_submit_button("Add Question") and text.strip():
                category = next((c for c in categories if c.name == picked), None)
                put_dashboard(dash.add_question(
                    get_dashboard(),
                    text,
                    category_id=category.id if category else None,
                    category_name=category.name if category else "Custom Question",
                ))
                st.rerun()


# Navigation shell
page = st.session_state.page
if page == "projects" and st.session_state.get("company_id"):
    render_projects()
elif page == "dashboard" and st.session_state.get("project_id"):
    render_dashboard()
else:
    render_companies()
