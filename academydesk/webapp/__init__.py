"""Flask application providing the AcademyDesk UI."""

from __future__ import annotations

import datetime as dt
from typing import Any, Mapping

from flask import (
    Flask,
    flash,
    redirect,
    render_template,
    request,
    session,
    url_for,
)

from academydesk.roster.errors import (
    DataUnavailableError,
    PartialWorkflowError,
    RecordNotFoundError,
    ValidationError,
)
from academydesk.roster.listview import (
    ListViewState,
    apply_page,
    apply_page_size,
    apply_search,
    open_editor,
    page_numbers,
)
from academydesk.roster.store import STUDENTS, EntityStore
from academydesk.roster.system import BATCHES, STUDENT_FIELDS, RosterSystem

PUBLIC_ENDPOINTS = {"login", "static"}


def safe_next(target: str | None) -> str:
    """Return ``target`` if it is a local path, otherwise the dashboard."""

    if target and target.startswith("/") and not target.startswith(("//", "/\\")):
        return target
    return url_for("dashboard")


def create_app(
    database_path: str = "academy_app.db",
    config: Mapping[str, Any] | None = None,
) -> Flask:
    """Create and configure the Flask application."""

    app = Flask(
        __name__,
        template_folder="templates",
        static_folder="static",
    )
    app.config.from_mapping(
        SECRET_KEY="academy-secret",
        ADMIN_USERNAME="admin",
        ADMIN_PASSWORD="admin",
        ITEMS_PER_PAGE=10,
        DEFAULT_RATE_PER_HOUR=50,
    )
    app.config.from_prefixed_env("ACADEMYDESK")
    if config:
        app.config.update(config)

    system = RosterSystem(EntityStore(database_path))
    app.extensions["roster"] = system

    def list_state(name: str) -> tuple[ListViewState, Any]:
        """Apply the query string to a list's stored state and render its page."""

        views = session.get("views", {})
        state = ListViewState.from_dict(views.get(name), app.config["ITEMS_PER_PAGE"])
        search = request.args.get("search")
        if search is not None and search != state.search_term:
            state = apply_search(state, search)
        per_page = request.args.get("per_page", type=int)
        if per_page is not None and per_page != state.page_size:
            try:
                state = apply_page_size(state, per_page)
            except ValidationError as exc:
                flash(str(exc), "error")
        listing = system.page(name, state)
        requested = request.args.get("page", type=int)
        if requested is not None:
            state = apply_page(state, requested, listing.total_pages)
            listing = system.page(name, state)
        views[name] = state.to_dict()
        session["views"] = views
        return state, listing

    @app.before_request
    def require_login() -> Any:
        if request.endpoint in PUBLIC_ENDPOINTS or session.get("authenticated"):
            return None
        return redirect(url_for("login", next=request.path))

    @app.context_processor
    def inject_navigation() -> dict[str, Any]:
        return {
            "username": session.get("username"),
            "current_year": dt.date.today().year,
            "page_numbers": page_numbers,
            "extra_args": {},
        }

    @app.errorhandler(DataUnavailableError)
    def data_unavailable(exc: DataUnavailableError) -> Any:
        app.logger.error("Serving unavailable page: %s", exc)
        return render_template("unavailable.html", collection=exc.collection), 503

    @app.errorhandler(RecordNotFoundError)
    def record_not_found(exc: RecordNotFoundError) -> Any:
        flash(str(exc), "error")
        return redirect(url_for("dashboard"))

    @app.route("/login", methods=["GET", "POST"])
    def login() -> Any:
        if request.method == "POST":
            username = request.form.get("username", "")
            password = request.form.get("password", "")
            if (
                username == app.config["ADMIN_USERNAME"]
                and password == app.config["ADMIN_PASSWORD"]
            ):
                session["authenticated"] = True
                session["username"] = username
                return redirect(safe_next(request.args.get("next")))
            app.logger.warning("Failed login for %r", username)
            flash("Invalid username or password", "error")
        return render_template("login.html")

    @app.get("/logout")
    def logout() -> Any:
        session.clear()
        return redirect(url_for("login"))

    @app.post("/reload")
    def reload() -> Any:
        system.reload()
        return redirect(request.referrer or url_for("dashboard"))

    @app.get("/")
    def index() -> Any:
        return redirect(url_for("dashboard"))

    @app.route("/dashboard")
    def dashboard() -> Any:
        return render_template("dashboard.html", snapshot=system.dashboard())

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------
    @app.route("/students", methods=["GET", "POST"])
    def students() -> Any:
        if request.method == "POST":
            try:
                system.add_student(
                    name=request.form.get("name", ""),
                    address=request.form.get("address", ""),
                    phone=request.form.get("phone", ""),
                    batch=request.form.get("batch", ""),
                    age=request.form.get("age"),
                    registration_date=request.form.get("registration_date") or None,
                )
                flash("Student added", "success")
                return redirect(url_for("students"))
            except ValidationError as exc:
                flash(str(exc), "error")
        state, listing = list_state("students")
        editor = open_editor(
            {"batch": BATCHES[0], "age": 0, "registration_date": dt.date.today().isoformat()},
            system.get_student(request.args["edit"]) if request.args.get("edit") else None,
        )
        return render_template(
            "students.html",
            state=state,
            listing=listing,
            editor=editor,
            batches=BATCHES,
        )

    @app.post("/students/<student_id>")
    def edit_student(student_id: str) -> Any:
        try:
            # Fields left out of the form, or a blank date or age, keep their stored value.
            changes = {
                key: request.form[key]
                for key in STUDENT_FIELDS
                if key in request.form
                and (request.form[key].strip() or key not in ("registration_date", "age"))
            }
            system.update_student(student_id, **changes)
            flash("Student updated", "success")
        except (ValidationError, RecordNotFoundError) as exc:
            flash(str(exc), "error")
        return redirect(url_for("students"))

    @app.post("/students/<student_id>/delete")
    def delete_student(student_id: str) -> Any:
        if request.form.get("confirm") != "yes":
            flash("Deletion not confirmed", "warning")
        else:
            system.delete_student(student_id)
            flash("Student deleted", "success")
        return redirect(url_for("students"))

    # ------------------------------------------------------------------
    # Attendance
    # ------------------------------------------------------------------
    @app.route("/attendance")
    def attendance() -> Any:
        date = request.args.get("date") or dt.date.today().isoformat()
        state, listing = list_state("attendance")
        return render_template(
            "attendance.html",
            date=date,
            state=state,
            listing=listing,
            extra_args={"date": date},
            summary=system.attendance_day(date),
        )

    @app.post("/attendance")
    def mark_attendance() -> Any:
        date = request.form.get("date") or dt.date.today().isoformat()
        try:
            system.mark_attendance(
                request.form["student_id"],
                request.form.get("student_name", ""),
                date,
                request.form.get("status", ""),
                notes=request.form.get("notes") or None,
            )
        except (ValidationError, RecordNotFoundError) as exc:
            flash(str(exc), "error")
        return redirect(url_for("attendance", date=date))

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------
    def customer_names(text: str) -> list[str]:
        # Without a typed prefix the browser narrows the full list itself.
        if text.strip():
            return [s["name"] for s in system.suggest_customers(text)]
        return sorted(s["name"] for s in system.collection(STUDENTS) if s.get("name"))

    @app.route("/billing", methods=["GET", "POST"])
    def billing() -> Any:
        if request.method == "POST":
            try:
                booking_id = system.save_booking(
                    customer_name=request.form.get("customer_name", ""),
                    date=request.form.get("date") or None,
                    start_time=request.form.get("start_time"),
                    end_time=request.form.get("end_time"),
                    rate_per_hour=request.form.get("rate_per_hour"),
                    booking_id=request.form.get("booking_id") or None,
                )
                if booking_id is None:
                    flash("Enter a customer name", "warning")
                else:
                    flash("Booking saved", "success")
                    return redirect(url_for("billing"))
            except (ValidationError, RecordNotFoundError) as exc:
                flash(str(exc), "error")
        state, listing = list_state("bookings")
        editing = system.get_booking(request.args["edit"]) if request.args.get("edit") else None
        editor = open_editor(
            {
                "student_name": "",
                "date": dt.date.today().isoformat(),
                "start_time": "",
                "end_time": "",
                "rate_per_hour": app.config["DEFAULT_RATE_PER_HOUR"],
            },
            editing,
        )
        return render_template(
            "billing.html",
            state=state,
            listing=listing,
            editor=editor,
            summary=system.booking_summary(),
            suggestions=customer_names(request.args.get("customer", "")),
        )

    @app.post("/billing/<booking_id>/status")
    def booking_status(booking_id: str) -> Any:
        try:
            invoice = system.update_booking_status(booking_id, request.form.get("status", ""))
            if invoice:
                flash(f"Invoice {invoice['invoice_number']} generated successfully!", "success")
            else:
                flash("Booking updated", "success")
        except PartialWorkflowError as exc:
            app.logger.warning("Partial failure: %s", exc)
            flash(str(exc), "warning")
        except (ValidationError, RecordNotFoundError) as exc:
            flash(str(exc), "error")
        return redirect(url_for("billing"))

    @app.post("/billing/<booking_id>/delete")
    def delete_booking(booking_id: str) -> Any:
        if request.form.get("confirm") != "yes":
            flash("Deletion not confirmed", "warning")
        else:
            system.delete_booking(booking_id)
            flash("Booking deleted", "success")
        return redirect(url_for("billing"))

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------
    @app.route("/invoices")
    def invoices() -> Any:
        state, listing = list_state("invoices")
        return render_template(
            "invoices.html",
            state=state,
            listing=listing,
            summary=system.invoice_summary(),
        )

    @app.get("/invoices/<invoice_id>/print")
    def print_invoice(invoice_id: str) -> Any:
        try:
            invoice = system.get_invoice(invoice_id)
        except (ValidationError, RecordNotFoundError) as exc:
            flash(str(exc), "error")
            return redirect(url_for("invoices"))
        return render_template("invoice_print.html", invoice=invoice)

    @app.post("/invoices/<invoice_id>/status")
    def invoice_status(invoice_id: str) -> Any:
        try:
            system.update_invoice_status(invoice_id, request.form.get("status", ""))
            flash("Invoice updated", "success")
        except (ValidationError, RecordNotFoundError) as exc:
            flash(str(exc), "error")
        return redirect(url_for("invoices"))

    @app.post("/invoices/<invoice_id>/delete")
    def delete_invoice(invoice_id: str) -> Any:
        if request.form.get("confirm") != "yes":
            flash("Deletion not confirmed", "warning")
        else:
            system.delete_invoice(invoice_id)
            flash("Invoice deleted", "success")
        return redirect(url_for("invoices"))

    return app


__all__ = ["create_app"]
