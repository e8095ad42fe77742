import argparse
import logging
import sys
import uuid
from typing import Optional

import flask
from flask import jsonify, request

from calcbot import config
from calcbot.command import CommandKind, classify, execute, keyword_reply
from calcbot.errors import CalcError
from calcbot.evaluator import Evaluator, format_number

# --- Logging Setup ---
logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
logger = logging.getLogger(__name__)

# Account for sessionless calculations; equations are refused there, so it
# never holds variables
ANONYMOUS_ACCOUNT = "anonymous"

CLI_COMMANDS = ["hello", "author", "help", "vars", "exit", "quit"]


def _read_query():
    """Returns (query, None) or (None, error response) for the JSON payload."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or "query" not in data:
        return None, (jsonify({"error": "Missing 'query' in JSON payload"}), 400)

    query = str(data["query"]).strip()
    if not query:
        return None, (jsonify({"error": "Query cannot be empty"}), 400)
    return query, None


def _evaluate_query(evaluator: Evaluator, query: str, account: str):
    """Runs a classified query and builds the JSON response for it."""
    kind = classify(query)
    try:
        if kind is CommandKind.KEYWORD:
            return jsonify({"result": keyword_reply(query)}), 200
        elif kind is CommandKind.EQUATION:
            variable_name, _, value = evaluator.evaluate_equation(query, account).partition(" = ")
            logger.info(f"Account {account}: assigned {variable_name} = {value}")
            return jsonify({"variable_set": variable_name, "result": value}), 200
        elif kind is CommandKind.EXPRESSION:
            result = evaluator.evaluate_expression(query, account)
            logger.info(f"Account {account}: '{query}' = {result}")
            return jsonify({"result": result}), 200
        elif kind is CommandKind.VARIABLE:
            return jsonify({"result": format_number(evaluator.get_variable(query, account))}), 200
    except CalcError as e:
        logger.warning(f"Account {account}: evaluation failed for '{query}': {e}")
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(f"Account {account}: internal error for '{query}': {e}", exc_info=True)
        return jsonify({"error": "An internal server error occurred during calculation."}), 500

    logger.warning(f"Account {account}: could not understand '{query}'")
    return jsonify({"error": f"Could not understand or parse expression: '{query}'"}), 400


# --- Flask App Setup ---


def create_app(evaluator: Optional[Evaluator] = None) -> flask.Flask:
    """Builds the web host. Each session id is an account with its own variables."""
    app = flask.Flask(__name__)
    app.config["DEBUG"] = config.DEBUG_MODE
    app.config["EVALUATOR"] = evaluator if evaluator is not None else Evaluator()

    def current_evaluator() -> Evaluator:
        return app.config["EVALUATOR"]

    # --- API Endpoints ---

    @app.route("/calculate", methods=["POST"])
    def calculate():
        """Performs a calculation without requiring a session."""
        query, error_response = _read_query()
        if error_response:
            return error_response

        if classify(query) is CommandKind.EQUATION:
            return jsonify({"error": "Variable assignments require a session. Use /sessions endpoint."}), 400

        return _evaluate_query(current_evaluator(), query, ANONYMOUS_ACCOUNT)

    @app.route("/sessions", methods=["POST"])
    def create_session():
        """Creates a new calculation session."""
        session_id = str(uuid.uuid4())
        logger.info(f"New session created: {session_id}")
        return jsonify({"session_id": session_id}), 201

    @app.route("/sessions/<string:session_id>", methods=["GET"])
    def get_session_vars(session_id):
        """Retrieves the variables for a given session."""
        variables = current_evaluator().store.variables(session_id)
        return jsonify({name: format_number(value) for name, value in variables.items()}), 200

    @app.route("/sessions/<string:session_id>", methods=["DELETE"])
    def delete_session(session_id):
        """Ends a session, dropping all of its variables."""
        if current_evaluator().delete_variables(session_id):
            return "", 204
        return jsonify({"error": f"Session '{session_id}' has no variables to delete"}), 404

    @app.route("/sessions/<string:session_id>/calculate", methods=["POST"])
    def calculate_in_session(session_id):
        """Performs calculation or assignment within a session."""
        query, error_response = _read_query()
        if error_response:
            return error_response
        return _evaluate_query(current_evaluator(), query, session_id)

    return app


app = create_app()


# --- CLI Interface ---


def _setup_readline(evaluator: Evaluator, account: str, history_file: Optional[str]) -> bool:
    """Enables history and tab completion when readline is available."""
    try:
        import readline
    except ImportError:
        return False

    if history_file:
        try:
            readline.read_history_file(history_file)
            readline.set_history_length(1000)
        except (FileNotFoundError, OSError):
            pass

        import atexit

        atexit.register(readline.write_history_file, history_file)

    def completer(text, state):
        matches = [cmd for cmd in CLI_COMMANDS if cmd.startswith(text)]
        matches.extend(name for name in evaluator.store.variables(account) if name.startswith(text))
        if state < len(matches):
            return matches[state]
        return None

    readline.parse_and_bind("tab: complete")
    readline.set_completer(completer)
    return True


def run_cli_mode(argv=None, evaluator: Optional[Evaluator] = None, input_func=input) -> None:
    """Run calculator in interactive CLI mode."""
    parser = argparse.ArgumentParser(description="calcbot CLI")
    parser.add_argument("--account", "-a", type=str, default=config.CLI_ACCOUNT, help="Account that owns the variables")
    parser.add_argument("--no-history", action="store_true", help="Do not read or write the history file")
    args = parser.parse_args(argv)

    evaluator = evaluator if evaluator is not None else Evaluator()
    account = args.account
    history_file = None if args.no_history else config.HISTORY_FILE

    has_readline = _setup_readline(evaluator, account, history_file)
    print("calcbot - type 'help' for usage, 'exit' to quit")
    if not has_readline:
        print("Note: readline is not available, command history and tab completion are off")

    try:
        while True:
            try:
                query = input_func("> ").strip()
            except EOFError:
                break

            if not query:
                continue

            if query.lower() in ("exit", "quit"):
                break

            if query.lower() == "vars":
                variables = evaluator.store.variables(account)
                if not variables:
                    print("No variables defined.")
                else:
                    print("Current variables:")
                    for name, value in variables.items():
                        print(f"  {name} = {format_number(value)}")
                continue

            print(execute(query, account, evaluator, log_errors=False))
    except KeyboardInterrupt:
        print("\nKeyboard interrupt received. Exiting...")

    evaluator.delete_variables(account)
    print("Goodbye!")


# --- Entry Points ---
def start_web_server():
    """Entry point for running the web server."""
    logger.info(f"Starting web server on http://{config.HOST}:{config.PORT}")
    app.run(host=config.HOST, port=config.PORT)


def start_cli_mode():
    """Entry point for running the CLI mode."""
    run_cli_mode()


def main():
    """Main entry point that decides between web and CLI mode based on arguments."""
    if len(sys.argv) > 1:
        run_cli_mode()
        return

    start_web_server()


if __name__ == "__main__":
    main()
