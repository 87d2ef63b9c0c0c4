import json
import logging

import pika

from freelancehive.config import get_settings

logger = logging.getLogger(__name__)

EVENTS_QUEUE = "events"


def publish_event(event_type: str, data: dict):
    """Publish a domain event to RabbitMQ.

    Delivery is best effort: a broker outage is logged and never fails the
    request that produced the event.
    """
    settings = get_settings()
    if not settings.events_enabled:
        logger.debug("Events disabled, dropping %s", event_type)
        return
    try:
        params = pika.URLParameters(settings.rabbitmq_url)
        connection = pika.BlockingConnection(params)
        channel = connection.channel()
        channel.queue_declare(queue=EVENTS_QUEUE, durable=True)
        channel.basic_publish(
            exchange="",
            routing_key=EVENTS_QUEUE,
            body=json.dumps({"type": event_type, "data": data}, default=str),
            properties=pika.BasicProperties(delivery_mode=2),
        )
        connection.close()
    except Exception as exc:
        logger.warning("Failed to publish event %s: %s", event_type, exc)
