# orderflow/celery_worker.py
from celery import Celery

from orderflow.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND, NOTIFICATION_TIMEOUT_SECONDS

celery_app = Celery(
    "orderflow",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# Explicite importuj taski, zeby Celery je zarejestrowal
celery_app.conf.imports = (
    "orderflow.services.notification_service",
)

#publikacja eventu nie moze blokowac requestu dluzej niz chwile
celery_app.conf.broker_connection_timeout = NOTIFICATION_TIMEOUT_SECONDS
celery_app.conf.broker_transport_options = {
    "socket_timeout": NOTIFICATION_TIMEOUT_SECONDS,
    "socket_connect_timeout": NOTIFICATION_TIMEOUT_SECONDS,
}
celery_app.conf.task_ignore_result = True

celery_app.conf.timezone = "UTC"
