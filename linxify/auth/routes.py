from flask import flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required, login_user, logout_user

from linxify.auth import auth_bp
from linxify.services.accounts import (
    RESET_REQUESTED_MESSAGE,
    authenticate,
    find_user_by_reset_token,
    register_user,
    request_password_reset,
    reset_password,
)
from linxify.services.common import (
    ValidationError,
    as_sentence,
    safe_redirect_target,
)


@auth_bp.route("/register", methods=["GET", "POST"])
def register():
    if current_user.is_authenticated:
        return redirect(url_for("web.dashboard"))

    if request.method == "POST":
        password = request.form.get("password") or ""
        confirm = request.form.get("confirm_password") or ""
        if password != confirm:
            flash("Passwords do not match.", "error")
        else:
            try:
                register_user(
                    request.form.get("email"), password, request.form.get("name")
                )
            except ValidationError as exc:
                flash(as_sentence(exc.message), "error")
            else:
                flash("Account created. Please sign in.", "success")
                return redirect(url_for("auth.login"))

    return render_template("auth/register.html")


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    next_url = safe_redirect_target(
        request.form.get("next") or request.args.get("next"),
        url_for("web.dashboard"),
    )
    if current_user.is_authenticated:
        return redirect(next_url)

    if request.method == "POST":
        user = authenticate(request.form.get("email"), request.form.get("password"))
        if user:
            login_user(user, remember=request.form.get("remember") == "1")
            return redirect(next_url)
        flash("Invalid credentials.", "error")

    return render_template("auth/login.html", next_url=next_url)


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return redirect(url_for("auth.login"))


@auth_bp.route("/forgot-password", methods=["GET", "POST"])
def forgot_password():
    if request.method == "POST":
        try:
            request_password_reset(request.form.get("email"))
        except ValidationError as exc:
            flash(as_sentence(exc.message), "error")
        else:
            flash(RESET_REQUESTED_MESSAGE, "success")
            return redirect(url_for("auth.login"))

    return render_template("auth/forgot_password.html")


@auth_bp.route("/reset-password", methods=["GET", "POST"])
def reset_password_page():
    token = (request.form.get("token") or request.args.get("token") or "").strip()

    if request.method == "POST":
        password = request.form.get("password") or ""
        if password != (request.form.get("confirm_password") or ""):
            flash("Passwords do not match.", "error")
        else:
            try:
                reset_password(token, password)
            except ValidationError as exc:
                flash(as_sentence(exc.message), "error")
            else:
                flash("Your password has been reset. Please sign in.", "success")
                return redirect(url_for("auth.login"))
    elif not find_user_by_reset_token(token):
        flash("This reset link is invalid or has expired.", "error")
        return redirect(url_for("auth.forgot_password"))

    return render_template("auth/reset_password.html", token=token)
