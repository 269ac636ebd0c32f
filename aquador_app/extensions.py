# aquador_app/extensions.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_migrate import Migrate
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy import text
import click


db = SQLAlchemy()
bcrypt = Bcrypt()
migrate = Migrate()
scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

CLEANUP_JOB_ID = "cleanup-cancelled-enrollments"


def init_extensions(app):
    # DB/Bcrypt/Migrate
    db.init_app(app)
    bcrypt.init_app(app)
    migrate.init_app(app, db)


def schedule_jobs(app):
    """Registra a varredura de inscrições canceladas no scheduler (não inicia)."""
    from .services.cleanup_service import run_cleanup

    def _cleanup_job():
        # jobs rodam fora de request: precisa de app context próprio
        with app.app_context():
            try:
                run_cleanup()
            except Exception:
                app.logger.exception("Scheduled cleanup failed")

    scheduler.add_job(
        _cleanup_job,
        "interval",
        minutes=app.config.get("CLEANUP_INTERVAL_MINUTES", 60),
        id=CLEANUP_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )


def register_cli(app):
    @app.cli.command("init-db")
    def init_db_cmd():
        """Cria as tabelas iniciais (DEV/MVP). Para produção: use flask db upgrade."""
        with app.app_context():
            # sanity check
            db.session.execute(text("SELECT 1"))
            db.create_all()
            print("Tabelas criadas.")

    @app.cli.command("cleanup-enrollments")
    def cleanup_enrollments_cmd():
        """Executa uma varredura de limpeza agora (mesma rotina do scheduler)."""
        from .services.cleanup_service import run_cleanup

        with app.app_context():
            result = run_cleanup()
            click.echo(
                f"Inscrições expiradas: {result.cleaned_enrollments} "
                f"(registradas: {result.logged}, falhas: {result.failed}); "
                f"eventos removidos: {result.purged_reservation_events} reserva, "
                f"{result.purged_payment_events} pagamento."
            )
