#!/usr/bin/env python3
"""
api_server.py

REST API server for the BLS12-381 threshold encryption scheme.
Runs on port 9080 by default.

Endpoints:
- POST /api/scaler              - Integer Lagrange scaler for (n, t)
- POST /api/keys                - Register a public key (commitment or raw key)
- POST /api/encrypt             - Encrypt a payload for a stored key
- GET  /api/sessions            - List all sessions
- GET  /api/sessions/<id>       - Session details
- GET  /api/health              - Health check
"""

import argparse
import logging
import traceback

from flask import Flask, request, jsonify
from flask_cors import CORS

from core.errors import DecodeError
from encryption_controller import EncryptionController


def _error(message: str, status: int):
    return jsonify({
        "success": False,
        "error": message
    }), status


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _int_field(data, field: str) -> int:
    value = data[field]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field} must be an integer")
    return value


def _str_field(data, field: str):
    value = data.get(field, None)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{field} must be a string")
    return value


def _hex_field(data, field: str) -> bytes:
    value = data[field]
    if not isinstance(value, str):
        raise ValueError(f"{field} must be a hex string")
    if value.startswith('0x'):
        value = value[2:]
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise ValueError(f"{field} is not valid hex") from None


def create_app(keys_dir: str = "keys") -> Flask:
    """Build the Flask app around an EncryptionController rooted at keys_dir."""
    app = Flask(__name__)
    CORS(app)

    controller = EncryptionController(keys_dir=keys_dir)
    app.config["CONTROLLER"] = controller

    @app.route('/api/health', methods=['GET'])
    def health_check():
        return jsonify({
            "status": "healthy",
            "service": "Threshold Encryption API",
            "version": "1.0.0"
        })

    @app.route('/api/scaler', methods=['POST'])
    def scaler():
        """
        Request Body:
        {
            "n_parties": int,
            "threshold": int (optional, BFT quorum of n_parties by default)
        }

        Response:
        {
            "success": bool,
            "n_parties": int,
            "threshold": int,
            "scaler": str (decimal)
        }
        """
        try:
            data = _json_body()
            if 'n_parties' not in data:
                return _error("Missing required field: n_parties", 400)

            threshold = _int_field(data, 'threshold') if data.get('threshold') is not None else None
            params, scaler = controller.compute_scaler(_int_field(data, 'n_parties'), threshold)

            return jsonify({
                "success": True,
                "n_parties": params.n,
                "threshold": params.t,
                "scaler": str(scaler)
            })

        except (TypeError, ValueError) as e:
            return _error(str(e), 400)
        except Exception as e:
            traceback.print_exc()
            return _error(f"Internal error: {str(e)}", 500)

    @app.route('/api/keys', methods=['POST'])
    def register_key():
        """
        Register a public key.

        Request Body (one of):
        {
            "commitment": str (hex, 128 bytes),
            "n_parties": int,
            "threshold": int (optional),
            "session_id": str (optional)
        }
        {
            "public_key": str (hex, 48 bytes),
            "session_id": str (optional)
        }
        """
        try:
            data = _json_body()
            session_id = _str_field(data, 'session_id')

            if 'commitment' in data:
                if 'n_parties' not in data:
                    return _error("Missing required field: n_parties", 400)
                threshold = _int_field(data, 'threshold') if data.get('threshold') is not None else None
                result = controller.register_commitment(
                    commitment=_hex_field(data, 'commitment'),
                    n_parties=_int_field(data, 'n_parties'),
                    threshold=threshold,
                    session_id=session_id
                )
            elif 'public_key' in data:
                result = controller.register_public_key(
                    pk_bytes=_hex_field(data, 'public_key'),
                    session_id=session_id
                )
            else:
                return _error("Missing required field: commitment or public_key", 400)

            return jsonify({
                "success": True,
                **result
            })

        except DecodeError as e:
            return _error(f"Invalid point encoding: {e}", 400)
        except (TypeError, ValueError) as e:
            return _error(str(e), 400)
        except Exception as e:
            traceback.print_exc()
            return _error(f"Internal error: {str(e)}", 500)

    @app.route('/api/encrypt', methods=['POST'])
    def encrypt():
        """
        Request Body:
        {
            "session_id": str,
            "message_hex": str,        # Payload, e.g. a signed transaction
            "marked": bool (optional)  # Prefix envelope with ff ff ff ff
        }

        Response:
        {
            "success": bool,
            "encrypted_key": str (hex),
            "encrypted_msg": str (hex),
            "envelope": str (hex),
            "encrypt_time_ms": float
        }
        """
        try:
            data = _json_body()
            for field in ('session_id', 'message_hex'):
                if field not in data:
                    return _error(f"Missing required field: {field}", 400)

            session_id = _str_field(data, 'session_id')
            if session_id not in controller.keystore["sessions"]:
                return _error(f"Session {session_id} not found", 404)

            result = controller.encrypt_for_session(
                session_id=session_id,
                message=_hex_field(data, 'message_hex'),
                marked=bool(data.get('marked', True))
            )
            return jsonify({
                "success": True,
                **result
            })

        except (TypeError, ValueError) as e:
            return _error(str(e), 400)
        except Exception as e:
            traceback.print_exc()
            return _error(f"Internal error: {str(e)}", 500)

    @app.route('/api/sessions', methods=['GET'])
    def list_sessions():
        try:
            sessions = controller.list_sessions()
            return jsonify({
                "success": True,
                "sessions": sessions,
                "count": len(sessions)
            })
        except Exception as e:
            traceback.print_exc()
            return _error(f"Internal error: {str(e)}", 500)

    @app.route('/api/sessions/<session_id>', methods=['GET'])
    def get_session(session_id):
        try:
            return jsonify({
                "success": True,
                "session_info": controller.get_session_info(session_id)
            })
        except ValueError as e:
            return _error(str(e), 404)
        except Exception as e:
            traceback.print_exc()
            return _error(f"Internal error: {str(e)}", 500)

    @app.errorhandler(404)
    def not_found(error):
        return _error("Endpoint not found", 404)

    @app.errorhandler(500)
    def internal_error(error):
        return _error("Internal server error", 500)

    return app


def main():
    """Run the Flask server."""
    parser = argparse.ArgumentParser(description="Threshold encryption API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=9080)
    parser.add_argument("--keys-dir", default="keys")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(),
                        format='%(asctime)s %(name)s %(levelname)s %(message)s')

    app = create_app(args.keys_dir)

    print("\n" + "="*80)
    print("THRESHOLD ENCRYPTION API SERVER")
    print("="*80)
    print(f"\nServer starting on: http://{args.host}:{args.port}")
    print(f"Keys directory: {args.keys_dir}")
    print(f"\nAvailable endpoints:")
    print(f"  • POST   /api/scaler              - Lagrange scaler for (n, t)")
    print(f"  • POST   /api/keys                - Register a public key")
    print(f"  • POST   /api/encrypt             - Encrypt a payload")
    print(f"  • GET    /api/sessions            - List all sessions")
    print(f"  • GET    /api/sessions/<id>       - Get session details")
    print(f"  • GET    /api/health              - Health check")
    print(f"\n{'='*80}\n")

    app.run(
        host=args.host,
        port=args.port,
        debug=False,
        threaded=True
    )


if __name__ == '__main__':
    main()
