"""
Streamlit UI for the Cafe POS.

Features:
- Tabbed interface for New Order, Menu, Offers and Sales
- Cart with quantity editing, offers and quick discount
- Drafts: save, load and delete an in-progress cart
- Export sales to CSV
"""
import logging
from datetime import datetime

import pandas as pd
import streamlit as st

from cafe_pos.config.settings import get_settings
from cafe_pos.data import DataServiceError, create_data_service
from cafe_pos.engine import InvalidInputError, ItemKind, PricingEngine
from cafe_pos.services.catalog_service import CatalogService
from cafe_pos.services.offers_service import OfferConflictError, OffersService, build_offer
from cafe_pos.services.sales_service import SalesService
from cafe_pos.services.order_service import CheckoutDetails, OrderEntry, OrderState, OrderStateError
from cafe_pos.services.session import PermissionDenied, ROLE_HIERARCHY, Session


st.set_page_config(
    page_title="Cafe POS",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_settings_cached():
    """Get cached settings."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
    return settings


@st.cache_resource
def get_data_service():
    """Get cached data service (shared across sessions)."""
    return create_data_service(get_settings_cached())


try:
    settings = get_settings_cached()
    data_service = get_data_service()
except Exception as e:
    st.error(f"System Error: {e}")
    st.stop()


# ============================================================================
# SIDEBAR: Session
# ============================================================================
with st.sidebar:
    st.header("👤 Session")

    with st.container(border=True):
        org_id = st.text_input("Restaurant", value=settings.default_org_id, key="org_input")
        user_id = st.text_input("User", value="demo-user", key="user_input")
        role = st.selectbox("Role", list(ROLE_HIERARCHY), index=1, key="role_input")

    session = Session(user_id=user_id, org_id=org_id, role=role)

    st.divider()
    st.caption(f"Data mode: **{settings.data_mode}**")
    if settings.clamp_total:
        st.caption("Totals are floored at zero")


def get_order_entry() -> OrderEntry:
    """OrderEntry kept in session_state; menu and offers are reloaded on every run, the cart is kept."""
    key = (session.org_id, session.user_id, session.role)
    if st.session_state.get('order_key') != key:
        entry = OrderEntry(data_service, session, PricingEngine.from_settings(settings))
        loaded = entry.load_menu()
        if not loaded.ok:
            st.error(loaded.error)
        st.session_state.order_entry = entry
        st.session_state.order_key = key
        return entry

    entry = st.session_state.order_entry
    refreshed = entry.refresh_menu()
    if not refreshed.ok:
        st.error(refreshed.error)
    return entry


entry = get_order_entry()


# ============================================================================
# MAIN CONTENT: TABBED INTERFACE
# ============================================================================
st.title("Cafe POS")
st.caption(f"Order Entry | {datetime.now().strftime('%Y-%m-%d %H:%M')}")

tab1, tab2, tab3, tab4 = st.tabs(["🛒 New Order", "📚 Menu", "🏷️ Offers", "📊 Sales"])


# ============================================================================
# TAB 1: NEW ORDER
# ============================================================================
with tab1:
    col1, col2 = st.columns([1.6, 1.4], gap="large")

    with col1:
        st.subheader("Add Items")
        search_term = st.text_input("Search menu", placeholder="Type to search products and combos...",
                                    label_visibility="collapsed")

        for item in entry.search(search_term):
            kind = ItemKind.of(item)
            c1, c2, c3 = st.columns([3, 1, 1])
            c1.markdown(f"**{item.name}**" + (" _(combo)_" if kind == ItemKind.COMBO else ""))
            c2.write(f"${item.price:.2f}")
            if c3.button("➕", key=f"add_{kind.value}_{item.item_id}"):
                try:
                    entry.add_item(item)
                    st.toast(f"{item.name} added to cart")
                    st.rerun()
                except OrderStateError as e:
                    st.warning(str(e))

        # Drafts
        with st.expander("📝 Drafts"):
            drafts = entry.list_drafts()
            if not drafts.ok:
                st.error(drafts.error)
            elif not drafts.data:
                st.caption("No saved drafts")
            else:
                for draft in drafts.data:
                    d1, d2, d3 = st.columns([3, 1, 1])
                    d1.write(f"{draft.name} · {draft.created_at}")
                    if d2.button("Load", key=f"load_{draft.draft_id}"):
                        try:
                            entry.load_draft(draft)
                            st.rerun()
                        except (OrderStateError, InvalidInputError) as e:
                            st.warning(str(e))
                    if d3.button("🗑️", key=f"del_{draft.draft_id}"):
                        deleted = entry.delete_draft(draft.draft_id)
                        if deleted.ok:
                            st.toast("Draft deleted!")
                            st.rerun()
                        else:
                            st.error(deleted.error)

    with col2:
        st.subheader("Order Summary")

        with st.container(border=True):
            if entry.cart.is_empty:
                st.info("🛒 Cart is empty")
                st.caption("Search the menu to begin an order.")
            else:
                for line in list(entry.cart.items):
                    l1, l2, l3 = st.columns([3, 1.4, 1])
                    l1.write(f"{line.name} ({line.kind.value})")
                    new_qty = l2.number_input(
                        "Qty", min_value=0, value=line.quantity, step=1,
                        key=f"qty_{line.kind.value}_{line.item_id}", label_visibility="collapsed",
                    )
                    l3.write(f"${line.extended_price:.2f}")
                    if new_qty != line.quantity:
                        try:
                            entry.update_quantity(line.item_id, line.kind, int(new_qty))
                            st.rerun()
                        except OrderStateError as e:
                            st.warning(str(e))

                st.divider()

                quick = st.checkbox(f"Quick discount ({settings.quick_discount_percent}%)",
                                    value=entry.cart.quick_discount)
                if quick != entry.cart.quick_discount:
                    entry.toggle_quick_discount()
                    st.rerun()

                for offer in entry.offers:
                    selected = offer.offer_id in entry.cart.selected_offer_ids
                    picked = st.checkbox(f"{offer.name} ({offer.discount_percent}% off)", value=selected,
                                         key=f"offer_{offer.offer_id}")
                    if picked != selected:
                        entry.toggle_offer(offer.offer_id)
                        st.rerun()

                result = entry.pricing()
                m1, m2, m3 = st.columns(3)
                m1.metric("Subtotal", f"${result.subtotal:,.2f}")
                m2.metric("Discount", f"${result.discount_total:,.2f}")
                m3.metric("Total", f"${result.total:,.2f}")
                if result.total < 0:
                    st.warning("Discounts exceed the subtotal")

                with st.expander("🔍 Pricing Details"):
                    st.text(result.get_trace_text())

                st.divider()

                b1, b2, b3 = st.columns(3)
                if b1.button("💾 Save Draft", use_container_width=True):
                    saved = entry.save_draft()
                    if saved.ok:
                        st.toast("Draft saved!")
                    else:
                        st.error(saved.error)
                if b2.button("🗑️ Clear", use_container_width=True):
                    entry.clear()
                    st.rerun()
                if b3.button("Checkout", type="primary", use_container_width=True,
                             disabled=entry.state != OrderState.BUILDING):
                    entry.begin_checkout()
                    st.rerun()

        if entry.state == OrderState.CHECKOUT_PENDING:
            with st.form("checkout"):
                st.subheader("Checkout")
                customer_name = st.text_input("Customer name")
                customer_phone = st.text_input("Customer phone")
                payment_method = st.selectbox("Payment method", ["cash", "card", "upi"])
                st.markdown(f"**Total Amount: ${entry.pricing().total:.2f}**")
                f1, f2 = st.columns(2)
                complete = f1.form_submit_button("Complete Order", type="primary")
                cancel = f2.form_submit_button("Cancel")

            if complete:
                done = entry.complete_checkout(CheckoutDetails(customer_name, customer_phone, payment_method))
                if done.ok:
                    st.success("Order completed successfully!")
                    st.rerun()
                else:
                    st.error(done.error)
            elif cancel:
                entry.cancel_checkout()
                st.rerun()


# ============================================================================
# TAB 2: MENU
# ============================================================================
with tab2:
    st.subheader("📚 Menu")
    catalog = CatalogService(data_service, session)

    products = catalog.list_products()
    if products.ok:
        st.dataframe(pd.DataFrame([
            {'ID': p.product_id, 'Name': p.name, 'Price': float(p.price),
             'Making Cost': float(p.making_cost), 'Profit': float(p.profit)}
            for p in products.data
        ]), use_container_width=True, hide_index=True)
    else:
        st.error(products.error)

    combos = catalog.list_combos()
    if combos.ok and combos.data:
        st.markdown("##### Combos")
        st.dataframe(pd.DataFrame([
            {'ID': c.combo_id, 'Name': c.name, 'Price': float(c.price), 'Products': ", ".join(c.product_ids)}
            for c in combos.data
        ]), use_container_width=True, hide_index=True)

    if session.has_role('admin'):
        with st.expander("➕ Add Product"):
            with st.form("add_product"):
                name = st.text_input("Name")
                price = st.text_input("Price")
                making_cost = st.text_input("Making cost", value="0")
                if st.form_submit_button("Save"):
                    try:
                        added = catalog.add_product(name, price, making_cost)
                        if added.ok:
                            st.success("Product added successfully!")
                            entry.refresh_menu()
                            st.rerun()
                        else:
                            st.error(added.error)
                    except InvalidInputError as e:
                        st.error(str(e))


# ============================================================================
# TAB 3: OFFERS
# ============================================================================
with tab3:
    st.subheader("🏷️ Offers")
    offers_service = OffersService(data_service, session)
    offers = offers_service.list_offers()

    if offers:
        st.dataframe(pd.DataFrame([
            {'ID': o.offer_id, 'Name': o.name, 'Discount %': float(o.discount_percent),
             'Dates': f"{o.window.start_date} to {o.window.end_date}",
             'Hours': f"{o.window.start_time}-{o.window.end_time}",
             'Applies To': o.scope.value, 'Active': o.is_active}
            for o in offers
        ]), use_container_width=True, hide_index=True)
    else:
        st.info("No offers.")

    if session.has_role('admin'):
        with st.expander("➕ Add Offer"):
            with st.form("add_offer"):
                o_name = st.text_input("Offer name")
                o_percent = st.number_input("Discount %", min_value=0.0, max_value=100.0, value=10.0)
                o1, o2 = st.columns(2)
                start_date = o1.date_input("Start date")
                end_date = o2.date_input("End date")
                start_time = o1.time_input("Start time")
                end_time = o2.time_input("End time")
                scope = st.selectbox("Applies to", ["all", "products", "combos"],
                                     format_func=lambda s: {"all": "Entire Bill", "products": "Specific Products",
                                                            "combos": "Specific Combos"}[s])
                if st.form_submit_button("Save"):
                    try:
                        offers_service.create_offer(build_offer(
                            o_name, str(o_percent),
                            start_date.strftime('%Y-%m-%d'), end_date.strftime('%Y-%m-%d'),
                            start_time.strftime('%H:%M'), end_time.strftime('%H:%M'),
                            scope,
                        ))
                        st.success("Offer saved")
                        entry.refresh_menu()
                        st.rerun()
                    except OfferConflictError as e:
                        st.error(f"Offer overlaps/conflicts with an existing offer! {e}")
                    except (ValueError, PermissionDenied) as e:
                        st.error(str(e))


# ============================================================================
# TAB 4: SALES
# ============================================================================
with tab4:
    st.header("Sales")
    sales_service = SalesService(data_service, session)

    today = sales_service.staff_today()
    if today.ok:
        t1, t2, t3 = st.columns(3)
        t1.metric("Orders Today", today.data['orders'])
        t2.metric("Revenue Today", f"${today.data['sales']:,.2f}")
        t3.metric("My Orders Today", today.data['my_orders'])
    else:
        st.error(today.error)

    if session.has_role('master_admin'):
        with st.expander("🏢 Restaurants"):
            overview = sales_service.restaurant_overview()
            if overview.ok:
                st.dataframe(pd.DataFrame([
                    {'ID': o['id'], 'Name': o['name'], 'Orders': o['orders'], 'Revenue': float(o['revenue'])}
                    for o in overview.data
                ]), use_container_width=True, hide_index=True)
            else:
                st.error(overview.error)

    if not session.has_role('admin'):
        st.info("Sales history is available to admins.")
    else:
        stats = sales_service.period_stats()
        if stats.ok:
            for label, period in (("Today", 'today'), ("Last 7 Days", 'week'), ("Last 28 Days", 'month')):
                figures = stats.data[period]
                p1, p2, p3, p4 = st.columns(4)
                p1.metric(f"{label} Sales", f"${figures['sales']:,.2f}")
                p2.metric("Orders", figures['orders'])
                p3.metric("Profit", f"${figures['profit']:,.2f}")
                p4.metric("Margin", f"{figures['margin']:.1f}%")
        else:
            st.error(stats.error)

        top = sales_service.top_items()
        if top.ok and top.data:
            st.markdown("##### Top Items")
            st.dataframe(pd.DataFrame(top.data), use_container_width=True, hide_index=True)

        st.divider()
        try:
            sales = data_service.list_sales(session.org_id)
        except DataServiceError as e:
            st.error(f"Failed to load sales: {e}")
            sales = []
        sales_df = pd.DataFrame([
            {'Sale': s.sale_id, 'Customer': s.customer_name, 'Payment': s.payment_method,
             'Items': s.item_count, 'Discount': float(s.discount_amount),
             'Total': float(s.total_amount), 'Profit': float(s.profit),
             'Processed By': s.processed_by, 'Created': s.created_at}
            for s in sales
        ])

        c1, c2, c3 = st.columns(3)
        c1.metric("Orders", len(sales))
        c2.metric("Revenue", f"${sales_df['Total'].sum() if not sales_df.empty else 0:,.2f}")
        c3.metric("Discounts", f"${sales_df['Discount'].sum() if not sales_df.empty else 0:,.2f}")

        st.dataframe(sales_df, use_container_width=True, hide_index=True)
        if not sales_df.empty:
            st.download_button(
                "📥 CSV",
                data=sales_df.to_csv(index=False),
                file_name=f"sales_{session.org_id}.csv",
                mime="text/csv",
            )
