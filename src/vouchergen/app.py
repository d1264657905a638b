"""Flask HTTP server for the voucher code service.

This module implements the HTTP server with routes for issuing and checking codes.
"""

import logging

from flask import Flask, Response, request

from vouchergen.config import Config
from vouchergen.voucher_handler import VoucherHandler, VoucherHandlerError

# Configure logging
logger = logging.getLogger(__name__)


def _text(body: str, status: int = 200) -> Response:
    return Response(body, status=status, mimetype="text/plain")


def create_app(config: Config, voucher_handler: VoucherHandler) -> Flask:
    """Create and configure Flask application.

    Args:
        config: Configuration instance
        voucher_handler: Handler for voucher operations

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    @app.route("/", methods=["GET"])
    def health_check():
        """Health check endpoint.

        GET / - Health check

        Returns:
            200: OK
        """
        return _text("OK\n")

    @app.route("/codes", methods=["POST"])
    def issue_codes():
        """Handle code issuance requests.

        POST /codes?count=N - Issue N new codes, one per line

        Returns:
            200: Newly issued codes
            400: Bad request (missing or invalid count)
            413: Count above the per-request limit
            500: Internal server error
        """
        raw_count = request.args.get("count")
        if raw_count is None or not (raw_count.isascii() and raw_count.isdigit()):
            logger.warning(f"Invalid count from {request.remote_addr}: {raw_count!r}")
            return _text(
                "Bad Request: count must be a non-negative integer\n", status=400
            )

        count = int(raw_count)
        if count > config.max_codes_per_request:
            logger.warning(
                f"Too many codes requested from {request.remote_addr}: {count}"
            )
            return _text(
                f"Payload Too Large: Maximum is {config.max_codes_per_request} "
                "codes per request\n",
                status=413,
            )

        try:
            codes = voucher_handler.issue_codes(count)
        except VoucherHandlerError as e:
            logger.error(f"Voucher handler error for {request.remote_addr}: {e}")
            return _text("Internal Server Error: Failed to issue codes\n", status=500)

        return _text("".join(f"{code}\n" for code in codes))

    @app.route("/codes/<code>", methods=["GET"])
    def check_code(code: str):
        """Handle code lookup requests.

        GET /codes/<code> - Check whether a code has been issued

        Returns:
            200: Code has been issued
            404: Code is unknown
            500: Internal server error
        """
        try:
            issued = voucher_handler.is_issued(code)
        except VoucherHandlerError as e:
            logger.error(f"Lookup failed for {code}: {e}")
            return _text("Internal Server Error: Failed to look up code\n", status=500)

        if not issued:
            return _text(f"Not Found: Code {code} has not been issued\n", status=404)
        return _text(f"{code}\n")

    @app.route("/code-length", methods=["GET"])
    def code_length():
        """Return the current code length.

        Returns:
            200: Current code length
            500: Internal server error
        """
        try:
            length = voucher_handler.current_code_length()
        except VoucherHandlerError as e:
            logger.error(f"Failed to read code length: {e}")
            return _text(
                "Internal Server Error: Failed to read code length\n", status=500
            )

        return _text(f"{length}\n")

    return app


def run_server(config: Config, voucher_handler: VoucherHandler) -> None:
    """Run the Flask HTTP server.

    Args:
        config: Configuration instance
        voucher_handler: Handler for voucher operations
    """
    app = create_app(config, voucher_handler)

    logger.info(f"Starting HTTP server on all interfaces, port {config.listen_port}")
    app.run(host="0.0.0.0", port=config.listen_port, debug=False)  # nosec B104
