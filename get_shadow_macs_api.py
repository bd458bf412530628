import logging

from flask import Flask, jsonify, request
from pyVmomi import vmodl

from esxi_inventory import DEVICE_PATTERN, InventoryError, connect_vsphere, find_hosts
from mac_report import error_dicts, render_html
from settings import ConfigError, load_settings
from shadow_mac import get_shadow_macs_batch

logger = logging.getLogger(__name__)


def collect(settings):
    """
    Run the batch for the hosts selected by the query string.

    Returns the records and the (host name, exception) pairs of skipped hosts.
    """
    settings.require()
    names = request.args.getlist("host")
    cluster = request.args.get("cluster")
    pattern = request.args.get("pattern", DEVICE_PATTERN)

    errors = []
    with connect_vsphere(settings.server, settings.user, settings.password,
                         settings.port, settings.verify_ssl) as si:
        hosts = find_hosts(si, names, cluster)
        records = get_shadow_macs_batch(hosts, settings.esxi_credentials(), pattern,
                                        continue_on_error=True, errors=errors)
    return records, errors


def create_app(settings=None):
    app = Flask(__name__)
    app.config["SHADOW_MAC_SETTINGS"] = settings if settings is not None else load_settings()

    @app.errorhandler(ConfigError)
    def config_error(e):
        return jsonify({"error": f"Server is not configured: {e}"}), 500

    @app.errorhandler(InventoryError)
    def inventory_error(e):
        logger.error("Inventory request failed: %s", e)
        return jsonify({"error": str(e)}), 502

    @app.errorhandler(vmodl.MethodFault)
    def vsphere_fault(e):
        message = e.msg or type(e).__name__
        logger.error("vSphere request failed: %s", message)
        return jsonify({"error": message}), 502

    @app.route("/shadow-macs", methods=["GET"])
    def get_shadow_mac_addresses():
        records, errors = collect(app.config["SHADOW_MAC_SETTINGS"])
        body = {"results": [r.as_dict() for r in records]}
        if errors:
            body["errors"] = error_dicts(errors)
        return jsonify(body)

    @app.route("/shadow-macs/report", methods=["GET"])
    def shadow_mac_report():
        records, errors = collect(app.config["SHADOW_MAC_SETTINGS"])
        return render_html(records, errors)

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_app().run(host="0.0.0.0", port=5000)
