import os

from apscheduler.schedulers.background import BackgroundScheduler

from linxify.services.accounts import clear_expired_reset_tokens


scheduler = BackgroundScheduler()


def run_reset_token_sweep(app):
    with app.app_context():
        cleared = clear_expired_reset_tokens()
        if cleared:
            app.logger.info("Cleared %s expired password reset tokens", cleared)


def start_scheduler(app):
    if not app.config.get("SCHEDULER_ENABLED", True):
        return
    if os.environ.get("WERKZEUG_RUN_MAIN") == "false":
        return

    interval_minutes = app.config["RESET_TOKEN_SWEEP_INTERVAL_MINUTES"]
    if not scheduler.get_jobs():
        scheduler.add_job(
            run_reset_token_sweep,
            "interval",
            minutes=interval_minutes,
            kwargs={"app": app},
            id="reset_token_sweep",
            replace_existing=True,
        )
        scheduler.start()
