from flask import Flask, request, jsonify
from flask_cors import CORS
from payments_engine.errors import InstructorNotFoundError, NoClassesError, PaymentEngineError
from payments_engine.processor import calculate_payment_from_dict, calculate_period_from_dict
import os
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes (the dashboard calls the API from another origin)
CORS(app)


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Studio Instructor Payment API",
        "version": "1.0",
        "endpoints": {
            "calculate_payment": "/calculate_payment [POST]",
            "calculate_period": "/calculate_period [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


@app.route("/calculate_payment", methods=["POST"])
def calculate_payment():
    """
    Calculate one instructor's payment for a period
    """
    try:
        input_data = request.get_json(force=True, silent=True)

        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        instructor_id = input_data.get("instructor_id", "Unknown")
        logger.info(f"Calculating payment: instructor {instructor_id}, period {input_data.get('period_id')}")

        result = calculate_payment_from_dict(input_data)

        logger.info(f"Payment calculated successfully: instructor {instructor_id}")

        return jsonify(result), 200

    except InstructorNotFoundError as e:
        logger.warning(str(e))
        return jsonify({"error": str(e), "status": "not_found"}), 404

    except NoClassesError as e:
        logger.info(str(e))
        return jsonify({"error": str(e), "status": "skipped", "logs": list(e.logs)}), 422

    except (ValueError, KeyError, TypeError) as e:
        # Malformed payloads and formulas
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "validation_failed"
        }), 400

    except PaymentEngineError as e:
        logger.error(f"Calculation error: {str(e)}")
        return jsonify({"error": str(e), "status": "calculation_failed", "logs": list(e.logs)}), 422

    except Exception as e:
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred during processing",
            "status": "failed"
        }), 500


@app.route("/calculate_period", methods=["POST"])
def calculate_period():
    """
    Calculate every active instructor of a tenant for a period
    """
    try:
        input_data = request.get_json(force=True, silent=True)

        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        logger.info(f"Calculating period: {input_data.get('period_id')}")

        result = calculate_period_from_dict(input_data)

        logger.info(result["message"])

        return jsonify(result), 200

    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "validation_failed"
        }), 400

    except Exception as e:
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred during processing",
            "status": "failed"
        }), 500


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
