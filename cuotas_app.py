import streamlit as st
import pandas as pd
from datetime import date

from cuotas.auth import CredentialTable, current_session, init_session, sign_in, sign_out
from cuotas.bulk import TEMPLATE, prepare_bulk_upload
from cuotas.config import load_settings
from cuotas.errors import AuthError, ConfigError, CuotasError
from cuotas.formatting import format_currency, format_date, format_month
from cuotas.logging_setup import configure_logging, get_logger
from cuotas.models import MONTH_NAMES, month_key, month_name
from cuotas.payments import (
    build_payment_rows,
    build_payment_update,
    paid_months,
    suggested_amount,
)
from cuotas.reconcile import (
    by_participant,
    find_malformed_months,
    format_consecutive_months,
    group_by_key,
    reconcile_months,
)
from cuotas.reports import (
    export_filename,
    filter_payments,
    participants_export_frame,
    payments_export_frame,
    payments_report_frame,
    receipts_table,
    report_summary,
    to_csv_bytes,
)
from cuotas.repository import SheetsRepository
from cuotas.stats import dashboard_stats, management_stats

# ============================================================
# CONFIG STREAMLIT
# ============================================================
st.set_page_config(page_title="Cuotas CDI 660", page_icon="💳", layout="wide")

try:
    settings = load_settings(st.secrets)
except ConfigError as e:
    st.error(f"Configuración inválida: {e}")
    st.stop()

configure_logging(settings.log_level)
logger = get_logger("cuotas.app")

FEE = settings.monthly_fee
CURRENT_YEAR = date.today().year

VIEW_DASHBOARD = "📊 Dashboard"
VIEW_PARTICIPANTS = "👥 Participantes"
VIEW_PAYMENTS = "💳 Pagos"
VIEW_CONSOLIDADO = "🔎 Consolidado"
VIEW_REPORTS = "📄 Reportes"
VIEW_MANAGEMENT = "⚙️ Administración"

CARD_STYLE = (
    "background-color:#111827;padding:10px 15px;border-radius:10px;"
    "text-align:center;border:1px solid #374151;"
)


# ============================================================
# CONEXIÓN A GOOGLE SHEETS
# ============================================================

@st.cache_resource
def get_repository():
    return SheetsRepository.from_settings(load_settings(st.secrets))


def stat_card(icon, title, value, subtitle=""):
    sub = f'<div style="font-size:12px;color:#9CA3AF;">{subtitle}</div>' if subtitle else ""
    st.markdown(
        f"""
        <div style="{CARD_STYLE}">
            <div style="font-size:24px;">{icon}</div>
            <div style="font-size:13px;color:#9CA3AF;">{title}</div>
            <div style="font-size:22px;font-weight:bold;color:white;">{value}</div>
            {sub}
        </div>
        """,
        unsafe_allow_html=True,
    )


def warn_malformed(payments):
    for p in find_malformed_months(payments):
        logger.warning("Pago %s con mes inválido: %r", p.id, p.month)


def participant_label(p):
    return f"{p.code} - {p.full_name}"


# ============================================================
# LOGIN
# ============================================================

init_session(st.session_state)

try:
    provider = CredentialTable(settings.users)
except ConfigError as e:
    st.error(str(e))
    st.stop()


def login_form():
    st.markdown(
        "<h1 style='text-align:center;'>💳 Cuotas CDI 660</h1>",
        unsafe_allow_html=True,
    )
    st.subheader("🔐 Iniciar sesión")

    with st.form("login_form"):
        username = st.text_input("Usuario")
        password = st.text_input("Contraseña", type="password")
        submit = st.form_submit_button("Entrar")

    if submit:
        try:
            sign_in(st.session_state, provider, username, password)
        except AuthError as e:
            st.error(str(e))
        else:
            st.rerun()


session = current_session(st.session_state)
if session is None:
    login_form()
    st.stop()

try:
    repo = get_repository()
except CuotasError as e:
    logger.exception("No se pudo conectar al almacén de datos")
    st.error(str(e))
    st.stop()


# ============================================================
# NAVEGACIÓN
# ============================================================

def go_to(view, **state):
    st.session_state["nav"] = view
    for key, value in state.items():
        st.session_state[key] = value


def do_sign_out():
    sign_out(st.session_state)
    for key in ("nav", "preselected_participant_id", "editing_payment_id"):
        st.session_state.pop(key, None)


views = [VIEW_DASHBOARD, VIEW_PARTICIPANTS, VIEW_PAYMENTS, VIEW_CONSOLIDADO, VIEW_REPORTS]
if session.is_admin:
    views.append(VIEW_MANAGEMENT)

with st.sidebar:
    st.markdown(f"**{session.full_name}**")
    st.caption("Administrador" if session.is_admin else "Tutora")
    st.radio("Menú", views, key="nav")
    st.button("Cerrar sesión", on_click=do_sign_out)


# ============================================================
# DASHBOARD
# ============================================================

def view_dashboard():
    st.title("Dashboard")
    st.caption("Resumen del mes actual")

    current_month = date.today().strftime("%Y-%m")
    active = repo.fetch_participants(active=True)
    payments = repo.fetch_payments()
    warn_malformed(payments)
    stats = dashboard_stats(active, payments, current_month, FEE)
    rate = stats.payment_rate

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        stat_card("👥", "Total Participantes", stats.total_participants)
    with col2:
        stat_card("✅", "Pagaron este mes", stats.paid_this_month, f"{rate}% del total")
    with col3:
        stat_card("⏳", "Pendientes de pago", stats.pending_this_month, f"{100 - rate}% del total")
    with col4:
        stat_card("💰", "Total Recaudado", format_currency(stats.total_collected))

    st.markdown("---")
    st.subheader("Progreso de pagos del mes")
    st.progress(rate / 100)
    st.write(
        f"{stats.paid_this_month} pagaron · {rate}% · {stats.pending_this_month} pendientes"
    )

    col_a, col_b = st.columns(2)
    with col_a:
        st.subheader("Estado de pagos")
        st.write(f"**Al día:** {stats.paid_this_month}")
        st.write(f"**Pendientes:** {stats.pending_this_month}")
    with col_b:
        st.subheader("Resumen financiero")
        st.write(f"**Recaudado:** {format_currency(stats.total_collected)}")
        st.write(f"**Por cobrar:** {format_currency(stats.total_pending)}")


# ============================================================
# PARTICIPANTES
# ============================================================

def participant_form(participant=None):
    is_edit = participant is not None
    # Nuevo y Editar se dibujan en la misma corrida (una pestaña cada uno)
    prefix = f"participant_edit_{participant.id}" if is_edit else "participant_new"
    with st.form("participant_form_edit" if is_edit else "participant_form_new",
                 clear_on_submit=not is_edit):
        st.subheader("Editar participante" if is_edit else "Nuevo participante")
        code = st.text_input("Código", value=participant.code if is_edit else "",
                             key=f"{prefix}_code")
        full_name = st.text_input("Nombre completo",
                                  value=participant.full_name if is_edit else "",
                                  key=f"{prefix}_name")
        is_active = st.checkbox("Activo", value=participant.is_active if is_edit else True,
                                key=f"{prefix}_active")
        submit = st.form_submit_button("Guardar participante")

    if not submit:
        return
    code, full_name = code.strip(), full_name.strip()
    if not code or not full_name:
        st.error("El código y el nombre son obligatorios.")
        return
    try:
        if is_edit:
            repo.update_participant(participant.id, code, full_name, is_active)
        else:
            repo.add_participant(code, full_name, is_active, FEE)
    except CuotasError as e:
        logger.exception("Error guardando participante")
        st.error(str(e))
    else:
        st.success("Participante guardado correctamente.")
        st.rerun()


def bulk_upload_form():
    st.subheader("Carga masiva")
    st.caption("Una línea por participante: CÓDIGO,Nombre completo")
    st.download_button(
        "Descargar plantilla",
        data=TEMPLATE.encode("utf-8"),
        file_name="plantilla_participantes.txt",
        mime="text/plain",
    )
    text = st.text_area("Datos", height=150, placeholder=TEMPLATE)
    if text.strip():
        try:
            preview = prepare_bulk_upload(text)
        except CuotasError as e:
            st.error(str(e))
            return
        st.dataframe(
            pd.DataFrame(preview, columns=["Código", "Nombre"]),
            use_container_width=True,
        )
        if st.button(f"Cargar {len(preview)} participantes"):
            try:
                repo.add_participants(preview, FEE)
            except CuotasError as e:
                logger.exception("Error en carga masiva")
                st.error(str(e))
            else:
                st.success("Participantes cargados correctamente.")
                st.rerun()


def view_participants():
    st.title("Participantes")
    participants = repo.fetch_participants()
    st.caption(f"{len(participants)} participantes registrados")

    search = st.text_input("Buscar por código o nombre").strip().lower()
    if search:
        participants = [
            p for p in participants
            if search in p.full_name.lower() or search in p.code.lower()
        ]

    if not participants:
        st.info("No se encontraron participantes.")
    else:
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "Código": p.code,
                        "Nombre": p.full_name,
                        "Estado": "Activo" if p.is_active else "Inactivo",
                        "Cuota": format_currency(p.monthly_fee),
                    }
                    for p in participants
                ]
            ),
            use_container_width=True,
        )

    st.markdown("---")
    tab_new, tab_edit, tab_bulk = st.tabs(["➕ Nuevo", "✏️ Editar / eliminar", "📥 Carga masiva"])

    with tab_new:
        participant_form()

    with tab_edit:
        if not participants:
            st.info("No hay participantes para editar.")
        else:
            selected = st.selectbox(
                "Participante", participants, format_func=participant_label, key="edit_participant"
            )
            participant_form(selected)

            if session.is_admin:
                confirm = st.checkbox("Confirmo que quiero eliminar este participante y sus pagos")
                if st.button("Eliminar participante", disabled=not confirm):
                    try:
                        repo.delete_participant(selected.id)
                    except CuotasError as e:
                        logger.exception("Error eliminando participante")
                        st.error(f"Error al eliminar participante: {e}")
                    else:
                        st.success("Participante eliminado.")
                        st.rerun()

    with tab_bulk:
        bulk_upload_form()


# ============================================================
# PAGOS
# ============================================================

def payment_form(participants):
    by_id = {p.id: p for p in participants}
    preselected_id = st.session_state.pop("preselected_participant_id", None)
    if preselected_id in by_id:
        st.session_state["payment_participants"] = [preselected_id]

    st.subheader("Registrar pago")
    selected_ids = st.multiselect(
        "Participantes",
        list(by_id),
        format_func=lambda pid: participant_label(by_id[pid]),
        key="payment_participants",
    )
    selected = [by_id[pid] for pid in selected_ids]

    already_paid = set()
    if selected:
        year_payments = repo.fetch_payments(
            participant_ids=[p.id for p in selected], year_prefix=CURRENT_YEAR
        )
        already_paid = paid_months(year_payments, CURRENT_YEAR)

    def month_option(m):
        return f"{month_name(m)} ✔ pagado" if m in already_paid else month_name(m)

    months = st.multiselect(f"Meses de pago ({CURRENT_YEAR})", list(range(1, 13)), format_func=month_option)
    if months and already_paid.intersection(months):
        st.warning("Algunos meses seleccionados ya tienen pagos registrados.")

    suggested = suggested_amount(len(selected), len(months), FEE)
    with st.form("payment_form", clear_on_submit=True):
        amount = st.number_input("Monto total", min_value=0, step=1000, value=int(suggested))
        payment_date = st.date_input("Fecha de pago", value=date.today())
        receipt_number = st.text_input("Número de recibo")
        observations = st.text_area("Observaciones", height=80)
        if len(selected) > 1 or len(months) > 1:
            st.caption(
                f"Se registrarán {len(selected) * len(months)} pagos de "
                f"{format_currency(amount / max(len(selected) * len(months), 1))} cada uno."
            )
        submit = st.form_submit_button("Registrar pago")

    if submit:
        try:
            rows = build_payment_rows(
                [p.id for p in selected],
                months,
                CURRENT_YEAR,
                amount,
                payment_date.isoformat(),
                receipt_number,
                observations,
                created_by=session.username,
            )
            repo.add_payments(rows)
        except CuotasError as e:
            st.error(str(e))
        else:
            st.success("Pago registrado correctamente.")
            st.rerun()


def edit_payment_form(payment, participants):
    st.subheader(f"Editar pago #{payment.receipt_number}")
    key = payment.month_key or (CURRENT_YEAR, 1)
    index = next((i for i, p in enumerate(participants) if p.id == payment.participant_id), 0)

    with st.form("edit_payment_form"):
        participant = st.selectbox("Participante", participants, index=index, format_func=participant_label)
        month = st.selectbox("Mes", list(range(1, 13)), index=key[1] - 1, format_func=month_name)
        amount = st.number_input("Monto", min_value=0.0, step=1000.0, value=float(payment.amount))
        payment_date = st.text_input("Fecha de pago (YYYY-MM-DD)", value=payment.payment_date)
        receipt_number = st.text_input("Número de recibo", value=payment.receipt_number)
        observations = st.text_area("Observaciones", value=payment.observations, height=80)
        col_a, col_b = st.columns(2)
        save = col_a.form_submit_button("Guardar cambios")
        cancel = col_b.form_submit_button("Cancelar")

    if cancel:
        st.session_state.pop("editing_payment_id", None)
        st.rerun()
    if save:
        try:
            fields = build_payment_update(
                participant.id, month, key[0], amount, payment_date,
                receipt_number, observations, created_by=session.username,
            )
            repo.update_payment(payment.id, **fields)
        except CuotasError as e:
            st.error(str(e))
        else:
            st.session_state.pop("editing_payment_id", None)
            st.success("Pago actualizado.")
            st.rerun()


def view_payments():
    st.title("Pagos")
    participants = repo.fetch_participants(active=True)
    payments = repo.fetch_payments()
    warn_malformed(payments)
    st.caption(f"{len(payments)} pagos registrados")

    editing_id = st.session_state.get("editing_payment_id")
    editing = next((p for p in payments if p.id == editing_id), None)

    with st.expander("➕ Registrar pago", expanded="preselected_participant_id" in st.session_state):
        if participants:
            payment_form(participants)
        else:
            st.warning("Primero registra participantes activos.")

    if editing is not None:
        edit_payment_form(editing, repo.fetch_participants())

    st.markdown("---")
    search = st.text_input("Buscar por participante o recibo").strip().lower()
    if search:
        payments = [
            p for p in payments
            if search in p.participant_name.lower() or search in p.receipt_number.lower()
        ]

    groups = group_by_key(payments, by_participant)
    if not groups:
        st.info("No se encontraron pagos.")
        return

    for group in groups:
        first = group.payments[0]
        header = (
            f"{first.participant_code} · {first.participant_name} — "
            f"{format_currency(group.total_amount)} · {format_consecutive_months(group.payments)}"
        )
        with st.expander(header):
            st.write(f"**Último pago:** {format_date(group.payment_date)}")
            if group.observations:
                st.write(f"**Observaciones:** {group.observations}")
            for p in group.payments:
                col_info, col_edit, col_del = st.columns([6, 1, 1])
                col_info.write(
                    f"{format_month(p.month)} · {format_currency(p.amount)} · "
                    f"#{p.receipt_number} · {format_date(p.payment_date)}"
                )
                col_edit.button(
                    "✏️", key=f"edit_{p.id}", on_click=go_to, args=(VIEW_PAYMENTS,),
                    kwargs={"editing_payment_id": p.id},
                )
                if session.is_admin and col_del.button("🗑️", key=f"del_{p.id}"):
                    try:
                        repo.delete_payment(p.id)
                    except CuotasError as e:
                        logger.exception("Error eliminando pago")
                        st.error(f"Error al eliminar pago: {e}")
                    else:
                        st.rerun()


# ============================================================
# CONSOLIDADO
# ============================================================

def view_consolidado():
    st.title("Consolidado de pagos")
    st.caption("Consulta el estado de pagos por participante")

    participants = repo.fetch_participants(active=True)
    search = st.text_input("Buscar por código o nombre...").strip().lower()
    matches = [
        p for p in participants
        if not search or search in p.full_name.lower() or search in p.code.lower()
    ]
    if not matches:
        st.info("Selecciona un participante: usa el buscador para encontrarlo.")
        return

    participant = st.selectbox("Participante", matches, format_func=participant_label)
    payments = sorted(repo.fetch_payments(participant_id=participant.id), key=lambda p: p.month)
    warn_malformed(payments)
    status = reconcile_months(CURRENT_YEAR, payments, FEE)

    st.subheader(f"👤 {participant.full_name}")
    st.caption(f"Código: {participant.code}")
    st.button(
        "➕ Registrar pago",
        key="consolidado_register_payment",
        on_click=go_to,
        args=(VIEW_PAYMENTS,),
        kwargs={"preselected_participant_id": participant.id},
    )

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        stat_card("✅", "Meses pagados", status.paid_count)
    with col2:
        stat_card("❌", "Meses pendientes", status.unpaid_count)
    with col3:
        stat_card("💰", "Total pagado", format_currency(status.total_paid))
    with col4:
        stat_card("📅", "Total pendiente", format_currency(status.total_owed))

    st.markdown("---")
    st.subheader(f"Estado de pagos por mes ({CURRENT_YEAR})")
    cols = st.columns(4)
    for month, is_paid in status.month_map.items():
        color = "#14532d" if is_paid else "#7f1d1d"
        label = "PAGADO" if is_paid else "PENDIENTE"
        with cols[(month - 1) % 4]:
            st.markdown(
                f"""
                <div style="background-color:{color};padding:10px;border-radius:10px;
                            margin-bottom:8px;color:white;">
                    <b>{month_name(month)}</b><br>{format_currency(FEE)}<br>
                    <small>{label}</small>
                </div>
                """,
                unsafe_allow_html=True,
            )

    if payments:
        st.subheader("Historial de pagos")
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "Mes": format_month(p.month),
                        "Monto": format_currency(p.amount),
                        "Fecha Pago": format_date(p.payment_date),
                        "Recibo": f"#{p.receipt_number}",
                    }
                    for p in payments
                ]
            ),
            use_container_width=True,
        )


# ============================================================
# REPORTES
# ============================================================

def view_reports():
    st.title("Reportes")
    st.caption("Análisis y reportes de pagos")

    participants = repo.fetch_participants(active=True)
    payments = repo.fetch_payments()
    warn_malformed(payments)

    st.subheader("Filtros")
    col1, col2, col3, col4, col5 = st.columns(5)
    with col1:
        start_date = st.date_input("Fecha inicio", value=None)
    with col2:
        end_date = st.date_input("Fecha fin", value=None)
    with col3:
        participant = st.selectbox(
            "Participante", [None] + participants,
            format_func=lambda p: "Todos" if p is None else participant_label(p),
        )
    with col4:
        year = st.selectbox("Año", [None] + list(range(CURRENT_YEAR, CURRENT_YEAR - 5, -1)),
                            format_func=lambda y: "Todos" if y is None else str(y))
    with col5:
        month = st.selectbox("Mes", [None] + list(range(1, 13)),
                             format_func=lambda m: "Todos" if m is None else MONTH_NAMES[m - 1])

    if year and month:
        month_filter = month_key(year, month)
    elif year:
        month_filter = f"{year}-"
    elif month:
        month_filter = f"-{month:02d}"
    else:
        month_filter = None

    filtered = filter_payments(
        payments,
        start_date=start_date.isoformat() if start_date else None,
        end_date=end_date.isoformat() if end_date else None,
        participant_id=participant.id if participant else None,
        month=month_filter,
    )
    summary = report_summary(filtered)

    col_a, col_b, col_c = st.columns(3)
    with col_a:
        stat_card("💰", "Total recaudado", format_currency(summary["total_amount"]))
    with col_b:
        stat_card("🧾", "Pagos", summary["total_payments"])
    with col_c:
        stat_card("👥", "Participantes", summary["unique_participants"])

    st.download_button(
        "⬇️ Exportar CSV",
        data=to_csv_bytes(payments_report_frame(filtered)),
        file_name=export_filename("reporte_pagos"),
        mime="text/csv",
    )

    st.subheader(f"Detalle de pagos ({len(filtered)})")
    if not filtered:
        st.info("No hay pagos para los filtros seleccionados.")
        return
    table = receipts_table(filtered)
    table["Monto Total"] = table["Monto Total"].map(format_currency)
    table["Fecha Pago"] = table["Fecha Pago"].map(format_date)
    st.dataframe(table, use_container_width=True)


# ============================================================
# ADMINISTRACIÓN
# ============================================================

def view_management():
    st.title("Administración")
    st.caption("Panel de administración del sistema")

    participants = repo.fetch_participants()
    payments = repo.fetch_payments()
    stats = management_stats(participants, payments)

    col1, col2, col3 = st.columns(3)
    with col1:
        stat_card(
            "👥", "Total Participantes", stats.total_participants,
            f"{stats.active_participants} activos, {stats.inactive_participants} inactivos",
        )
    with col2:
        stat_card("🗂️", "Total Pagos", stats.total_payments, "Registros de pago")
    with col3:
        stat_card("💰", "Monto Total", format_currency(stats.total_amount), "Recaudado histórico")

    st.markdown("---")
    col_a, col_b = st.columns(2)
    with col_a:
        st.subheader("Exportar datos")
        st.download_button(
            "Exportar participantes",
            data=to_csv_bytes(participants_export_frame(participants)),
            file_name=export_filename("participantes"),
            mime="text/csv",
        )
        st.download_button(
            "Exportar pagos",
            data=to_csv_bytes(payments_export_frame(payments)),
            file_name=export_filename("pagos"),
            mime="text/csv",
        )
    with col_b:
        st.subheader("Configuración")
        st.write(f"**Cuota mensual actual:** {format_currency(FEE)}")
        st.write("**Moneda del sistema:** COP")
        st.write(f"**Hoja de datos:** {settings.sheet_name}")

    st.markdown("---")
    st.subheader("⚠️ Reiniciar base de datos")
    st.warning("Esta acción eliminará TODOS los datos de participantes y pagos.")
    confirm_1 = st.checkbox("Entiendo que se eliminarán todos los datos")
    confirm_2 = st.checkbox("Esta acción NO se puede deshacer")
    if st.button("Reiniciar base de datos", disabled=not (confirm_1 and confirm_2)):
        try:
            repo.reset()
        except CuotasError as e:
            logger.exception("Error reiniciando base de datos")
            st.error(f"Error al reiniciar la base de datos: {e}")
        else:
            st.success("Base de datos reiniciada exitosamente")


# ============================================================
# RENDER
# ============================================================

VIEW_FUNCS = {
    VIEW_DASHBOARD: view_dashboard,
    VIEW_PARTICIPANTS: view_participants,
    VIEW_PAYMENTS: view_payments,
    VIEW_CONSOLIDADO: view_consolidado,
    VIEW_REPORTS: view_reports,
    VIEW_MANAGEMENT: view_management,
}

try:
    VIEW_FUNCS[st.session_state.get("nav", VIEW_DASHBOARD)]()
except CuotasError as e:
    logger.exception("Error cargando la vista")
    st.error(str(e))
