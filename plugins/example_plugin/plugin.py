"""Example plugin demonstrating the hookline subscriber API.

Subscribes to its own lifecycle events and contributes a fragment to the
"page.footer" hook point. Serves as a reference implementation and a
smoke-test for `pm -S plugins/example_plugin`.
"""

import logging

from hookline.plugin.subscriber import EventSubscriber

logger = logging.getLogger(__name__)


class ExamplePlugin(EventSubscriber):
    """Logs its lifecycle and renders a footer badge."""

    def get_subscribed_events(self):
        return {
            "install_example_plugin": "on_install",
            "update_example_plugin": "on_update",
            "remove_example_plugin": "on_remove",
            "page.footer": ("render_footer", 50),
        }

    def on_install(self, payload):
        logger.info("Example plugin installed at %s", payload["version"])

    def on_update(self, payload):
        logger.info(
            "Example plugin %s from %s to %s",
            payload["direction"] or "changed",
            payload["old_version"],
            payload["new_version"],
        )

    def on_remove(self, payload):
        logger.info("Example plugin %s removed", payload["version"])

    def render_footer(self, context):
        return '<span class="example-badge">example plugin</span>'
