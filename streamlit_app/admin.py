"""Streamlit admin panel: orders table and settings."""

import streamlit as st

from app.services.order_service import OrdersUnavailableError, fetch_orders
from app.services.orders_view import OrdersViewState
from app.services.settings_service import RESEND_API_KEY, SettingsSaveError, load_setting, save_setting
from app.utils.formatting import format_amount, format_order_date
from streamlit_app.common import now_string, run, store

st.set_page_config(page_title="Admin Panel", layout="wide")
st.title("Admin Panel")
st.caption(f"Last refresh: {now_string()}")

view: OrdersViewState = st.session_state.setdefault("orders_view", OrdersViewState())

orders_tab, settings_tab = st.tabs(["Orders", "Settings"])

with orders_tab:
    view.begin_fetch()
    with st.spinner("Loading orders..."):
        try:
            orders = run(fetch_orders(store()))
        except OrdersUnavailableError as exc:
            orders = []
            view.finish_fetch(str(exc))
        else:
            view.finish_fetch()

    if view.error:
        st.error(view.error)
    elif not orders:
        st.info("No orders found")

    for order in orders:
        expanded = view.is_expanded(order.id)
        label = (
            f"{'▲' if expanded else '▼'} {order.name} · Order Token: {order.order_token} · "
            f"{format_order_date(order.created_at)} · {format_amount(order.total_amount)} · "
            f"{order.payment_method.capitalize()}"
        )
        if st.button(label, key=f"toggle-{order.id}", use_container_width=True):
            view.toggle(order.id)
            st.rerun()
        if not expanded:
            continue

        customer_col, details_col = st.columns(2)
        with customer_col:
            st.subheader("Customer Information")
            st.write(f"**Name:** {order.name}")
            st.write(f"**Phone:** {order.phone}")
            st.write(f"**Email:** {order.email}")
        with details_col:
            st.subheader("Order Details")
            st.write(f"**Payment Method:** {order.payment_method.capitalize()}")
            st.write(f"**Order Token:** `{order.order_token}`")
            st.write(f"**Placed On:** {format_order_date(order.created_at)}")

        if order.special_instructions:
            st.subheader("Special Instructions")
            st.write(order.special_instructions)

        st.subheader("Order Items")
        st.table([
            {
                "Product": item.product_name,
                "Price": format_amount(item.price),
                "Qty": item.quantity,
                "Total": format_amount(item.line_total),
            }
            for item in order.items
        ])
        st.write(f"Subtotal: **{format_amount(order.subtotal)}**")
        if order.delivery_fee > 0:
            st.write(f"Delivery Fee: **{format_amount(order.delivery_fee)}**")
        st.write(f"Total: **{format_amount(order.total_amount)}**")

        if order.payment_proof_url:
            st.link_button("View Payment Proof", order.payment_proof_url)

with settings_tab:
    st.subheader("Settings")
    st.caption("Configure your application settings")
    current_key = run(load_setting(store(), RESEND_API_KEY)) or ""
    show_key = st.checkbox("Show key", value=False)
    with st.form("resend_settings"):
        api_key = st.text_input(
            "Resend API Key",
            value=current_key,
            type="default" if show_key else "password",
            placeholder="re_xxxxxxxxxxxxxxxxxxxxxxxxxxxx",
            help="Get your key from https://resend.com",
        )
        if st.form_submit_button("Save Settings"):
            try:
                run(save_setting(store(), RESEND_API_KEY, api_key))
            except ValueError:
                st.error("Please enter your Resend API key.")
            except SettingsSaveError:
                st.error("Failed to save settings. Please try again.")
            else:
                st.success("Resend API key saved successfully!")
