import streamlit as st
import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from ai_filter import AIFilterError, build_gpt_agent
from backend import DataManager
from config import get_settings
from exporter import serialize_record, strip_internal_fields
from logger import setup_logging
from normalizer import ENTITY_FIELDS, ENTITY_TYPES
from parsers import FileParseError

st.set_page_config(page_title="Data Alchemist Dashboard", layout="wide")
st.title("🧪 Data Alchemist")

# One DataManager per browser session
if "dm" not in st.session_state:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    st.session_state.dm = DataManager(gpt_agent=build_gpt_agent(settings))

dm: DataManager = st.session_state.dm


def upload_entity_file(entity_type: str):
    uploaded_file = st.file_uploader(
        f"Upload {entity_type.capitalize()} (CSV or XLSX)", type=["csv", "xlsx"], key=f"upload-{entity_type}"
    )
    if uploaded_file is None:
        return
    # streamlit re-runs the script on every interaction
    marker = (uploaded_file.name, uploaded_file.size)
    if st.session_state.get(f"loaded-{entity_type}") == marker:
        return
    try:
        records = dm.load_file(entity_type, uploaded_file.name, uploaded_file.getvalue())
        st.success(f"{entity_type.capitalize()} uploaded with {len(records)} rows")
    except FileParseError as e:
        st.error(f"Error loading {entity_type}: {e}")
    st.session_state[f"loaded-{entity_type}"] = marker


def grid_frame(entity_type: str) -> pd.DataFrame:
    records = dm.filtered_entities(entity_type)
    rows = []
    for record in records:
        row = serialize_record(strip_internal_fields([record])[0])
        errors = record.get("_errors") or {}
        row["Errors"] = "; ".join(f"{field}: {message}" for field, message in errors.items())
        rows.append(row)
    return pd.DataFrame(rows, columns=ENTITY_FIELDS[entity_type] + ["Errors"])


with st.sidebar:
    st.header("1. Upload Data Files")
    for entity_type in ENTITY_TYPES:
        upload_entity_file(entity_type)
        if dm.file_errors[entity_type]:
            st.warning(dm.file_errors[entity_type])

    st.markdown("---")
    st.header("4. Prioritization Weights")
    weights = dm.prioritization_weights
    priority_level = st.slider("Client Priority Weight", 0.0, 2.0, float(weights["priorityLevel"]), 0.1, key="w-priorityLevel")
    fulfillment = st.slider("Task Fulfillment Weight", 0.0, 2.0, float(weights["requestedTaskFulfillment"]), 0.1, key="w-requestedTaskFulfillment")
    fairness = st.slider("Fairness Weight", 0.0, 2.0, float(weights["fairness"]), 0.1, key="w-fairness")
    dm.set_prioritization_weights({
        "priorityLevel": priority_level,
        "requestedTaskFulfillment": fulfillment,
        "fairness": fairness,
    })
    if st.button("Reset Weights"):
        dm.reset_prioritization_weights()
        for key in ("w-priorityLevel", "w-requestedTaskFulfillment", "w-fairness"):
            st.session_state.pop(key, None)
        st.rerun()

    st.markdown("---")
    if st.button("Reset Session"):
        dm.reset()
        for key in [k for k in st.session_state.keys() if str(k).startswith(("loaded-", "w-"))]:
            del st.session_state[key]
        st.rerun()


# --- Main workspace ---
st.header("2. Validate Data")
if st.button("Run Validation"):
    dm.validate_all()

summary = dm.validation_summary
if summary is not None:
    if summary["totalErrors"] == 0:
        st.success("All validations passed successfully!")
    else:
        counts = summary["errorsByEntity"]
        st.error(
            f"Found {summary['totalErrors']} error(s): "
            f"{counts['clients']} client, {counts['workers']} worker, {counts['tasks']} task."
        )
        st.dataframe(pd.DataFrame(summary["errorMessages"]), use_container_width=True)

st.markdown("---")
st.header("Data")
for entity_type, tab in zip(ENTITY_TYPES, st.tabs([t.capitalize() for t in ENTITY_TYPES])):
    with tab:
        query = st.text_input(
            "Filter with natural language", key=f"query-{entity_type}",
            placeholder="e.g. tasks with duration more than 2"
        )
        col1, col2 = st.columns(2)
        if col1.button("Apply AI Filter", key=f"filter-{entity_type}") and query.strip():
            try:
                filters = dm.ai_filter(query, entity_type)
                st.info(f"Applied {len(filters)} filter(s)")
            except AIFilterError as e:
                st.error(f"AI filter failed: {e}")
        if col2.button("Clear Filters", key=f"clear-{entity_type}"):
            dm.clear_filters(entity_type)

        frame = grid_frame(entity_type)
        st.caption(f"{len(frame)} of {len(dm.get_entities(entity_type))} items")
        st.dataframe(frame, use_container_width=True)

st.markdown("---")
st.header("3. Business Rules")
task_ids = [task["TaskID"] for task in dm.tasks]
worker_groups = sorted({w["WorkerGroup"] for w in dm.workers if w.get("WorkerGroup")})
client_groups = sorted({c["GroupTag"] for c in dm.clients if c.get("GroupTag")})

tab1, tab2, tab3 = st.tabs(["Co-run", "Load Limit", "Slot Restriction"])


def add_rule(data):
    try:
        rule = dm.add_rule(data)
        st.success(f"Rule added: {rule.description}")
    except PydanticValidationError as e:
        st.warning("; ".join(err["msg"] for err in e.errors()))


with tab1:
    co_run_tasks = st.multiselect("Tasks that must run together", task_ids)
    if st.button("Add Co-run Rule", disabled=len(co_run_tasks) < 2):
        add_rule({"type": "coRun", "tasks": co_run_tasks})

with tab2:
    limit_group = st.selectbox("Worker group", worker_groups, key="limit-group")
    limit_slots = st.number_input("Max slots per phase", min_value=1, value=1, step=1)
    if st.button("Add Load-limit Rule", disabled=not limit_group):
        add_rule({"type": "loadLimit", "groupName": limit_group, "maxSlotsPerPhase": int(limit_slots)})

with tab3:
    group_type = st.radio("Group type", ["client", "worker"], horizontal=True)
    groups = client_groups if group_type == "client" else worker_groups
    slot_group = st.selectbox("Group", groups, key="slot-group")
    min_common = st.number_input("Min common slots", min_value=1, value=1, step=1)
    if st.button("Add Slot-restriction Rule", disabled=not slot_group):
        add_rule({
            "type": "slotRestriction",
            "groupType": group_type,
            "groupName": slot_group,
            "minCommonSlots": int(min_common),
        })

st.subheader("Current Rules")
if not dm.rules:
    st.write("No rules defined yet.")
for rule in dm.rules:
    col1, col2 = st.columns([5, 1])
    col1.write(f"**{rule.type}**: {rule.description}")
    if col2.button("Delete", key=f"delete-{rule.id}"):
        dm.delete_rule(rule.id)
        st.rerun()

st.markdown("---")
st.header("5. Export Data & Rules")
has_data = any(dm.get_entities(t) for t in ENTITY_TYPES)
if not has_data:
    st.info("Upload data to enable export.")
else:
    for document in dm.export_files():
        st.download_button(
            f"Download {document['name']}",
            data=document["content"],
            file_name=document["name"],
            mime=document["type"],
            key=f"download-{document['name']}",
        )
