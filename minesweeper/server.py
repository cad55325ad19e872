"""Flask server for Minesweeper game."""
import asyncio
import logging
import sqlite3
import uuid
from datetime import datetime
from flask import Flask, request, jsonify, send_from_directory
from flask_cors import CORS
from temporalio.client import Client

from minesweeper.activities import MOVE_ACTIONS
from minesweeper.board import get_difficulty_settings
from minesweeper.client_provider import get_temporal_client
from minesweeper.config import Settings
from minesweeper.scores import ScoreStore, ScoreValidationError, validate_score_payload
from minesweeper.types import AutoplayRequest, GameConfig, MoveRequest
from minesweeper.workflows import MinesweeperWorkflow

settings = Settings.from_env()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = Flask(__name__, static_folder='../public')
CORS(app)

# Global client and store references
temporal_client: Client | None = None
score_store: ScoreStore | None = None


def get_score_store() -> ScoreStore:
    global score_store
    if score_store is None:
        score_store = ScoreStore(settings.scores_db_path)
    return score_store


def serialize_game_state(game_state):
    """Convert game state to JSON-serializable format."""
    if not game_state:
        return None

    board = game_state.board
    cells = [
        [
            {
                'row': cell.row,
                'col': cell.col,
                'isMine': cell.is_mine,
                'isRevealed': cell.is_revealed,
                'isFlagged': cell.is_flagged,
                'neighborMines': cell.neighbor_mines,
            }
            for cell in row
        ]
        for row in board.cells
    ] if board else []

    return {
        'id': game_state.id,
        'board': {
            'cells': cells,
            'rows': board.rows if board else 0,
            'cols': board.cols if board else 0,
            'mineCount': board.mine_count if board else 0,
        },
        'gameState': game_state.status.value,
        'mineCount': game_state.mine_count,
        'flagCount': game_state.flag_count,
        'elapsedSeconds': game_state.elapsed_seconds,
        'startTime': game_state.start_time.isoformat() if game_state.start_time else None,
        'endTime': game_state.end_time.isoformat() if game_state.end_time else None,
        'history': [
            {
                'timestamp': entry.timestamp,
                'row': entry.row,
                'col': entry.col,
                'cellType': entry.cell_type,
                'result': entry.result,
            }
            for entry in game_state.history
        ],
    }


def parse_game_config(data) -> GameConfig:
    """Build a GameConfig from either explicit dimensions or a difficulty name."""
    if not isinstance(data, dict):
        raise ValueError('Invalid game configuration')

    config_data = data.get('config')
    if config_data:
        if not all(isinstance(config_data.get(key), int) for key in ('rows', 'cols', 'mines')):
            raise ValueError('Invalid game configuration')
        config = GameConfig(rows=config_data['rows'], cols=config_data['cols'], mines=config_data['mines'])
    else:
        level = get_difficulty_settings(
            data.get('difficulty', 'easy'),
            int(data.get('customRows', 10)),
            int(data.get('customCols', 10)),
        )
        config = GameConfig(rows=level.rows, cols=level.cols, mines=level.mines)

    if config.rows < 1 or config.cols < 1 or config.mines < 0:
        raise ValueError('Invalid game configuration')
    if config.mines >= config.rows * config.cols:
        raise ValueError('Too many mines for the board size')
    return config


def _optional_ms(value):
    return None if value is None else int(value)


async def query_with_retry(handle, query, max_retries=5):
    """Query with retry logic for workflow initialization."""
    for i in range(max_retries):
        try:
            result = await handle.query(query)
            if result is not None:
                return result
        except Exception:
            if i == max_retries - 1:
                raise
        logger.info(f"Query not ready yet, retrying in {(i + 1) * 100}ms...")
        await asyncio.sleep((i + 1) * 0.1)
    return None


@app.route('/api/games', methods=['POST'])
def create_game():
    """Create a new game."""
    try:
        config = parse_game_config(request.get_json(silent=True))
    except (TypeError, ValueError) as error:
        return jsonify({'error': str(error)}), 400

    try:
        game_id = str(uuid.uuid4())

        async def start_workflow():
            await temporal_client.start_workflow(
                MinesweeperWorkflow.run,
                args=[game_id, config],
                id=game_id,
                task_queue=settings.task_queue
            )
            handle = temporal_client.get_workflow_handle_for(MinesweeperWorkflow.run, game_id)
            return await query_with_retry(handle, MinesweeperWorkflow.get_game_state_query)

        game_state = asyncio.run(start_workflow())
        return jsonify({'gameState': serialize_game_state(game_state)})

    except Exception as error:
        logger.error(f"Error creating game: {error}")
        return jsonify({'error': 'Failed to create game'}), 500


@app.route('/api/games/<game_id>', methods=['GET'])
def get_game_state(game_id):
    """Get game state."""
    try:
        async def query_game():
            handle = temporal_client.get_workflow_handle_for(MinesweeperWorkflow.run, game_id)
            game_state = await handle.query(MinesweeperWorkflow.get_game_state_query)
            autoplay = await handle.query(MinesweeperWorkflow.get_autoplay_query)
            return game_state, autoplay

        game_state, autoplay = asyncio.run(query_game())
        return jsonify({'gameState': serialize_game_state(game_state), 'autoplay': autoplay})

    except Exception as error:
        logger.error(f"Error getting game state: {error}")
        return jsonify({'error': 'Game not found'}), 404


@app.route('/api/games/<game_id>/moves', methods=['POST'])
def make_move(game_id):
    """Make a move."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}

    if not isinstance(data.get('row'), int) or \
       not isinstance(data.get('col'), int) or \
       data.get('action') not in MOVE_ACTIONS:
        return jsonify({'error': 'Invalid move request'}), 400

    move_request = MoveRequest(row=data['row'], col=data['col'], action=data['action'])

    try:
        async def execute_move():
            handle = temporal_client.get_workflow_handle_for(MinesweeperWorkflow.run, game_id)
            return await handle.execute_update(MinesweeperWorkflow.make_move_update, move_request)

        game_state = asyncio.run(execute_move())
        return jsonify({'gameState': serialize_game_state(game_state)})

    except Exception as error:
        logger.error(f"Error making move: {error}")
        return jsonify({'error': 'Failed to make move'}), 500


@app.route('/api/games/<game_id>/restart', methods=['POST'])
def restart_game(game_id):
    """Restart game."""
    try:
        config = parse_game_config(request.get_json(silent=True))
    except (TypeError, ValueError) as error:
        return jsonify({'error': str(error)}), 400

    try:
        async def execute_restart():
            handle = temporal_client.get_workflow_handle_for(MinesweeperWorkflow.run, game_id)
            return await handle.execute_update(MinesweeperWorkflow.restart_game_update, config)

        game_state = asyncio.run(execute_restart())
        return jsonify({'gameState': serialize_game_state(game_state)})

    except Exception as error:
        logger.error(f"Error restarting game: {error}")
        return jsonify({'error': 'Failed to restart game'}), 500


@app.route('/api/games/<game_id>/autoplay', methods=['POST'])
def start_autoplay(game_id):
    """Start autoplay on a game."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    try:
        autoplay_request = AutoplayRequest(
            step_interval_ms=int(data.get('stepIntervalMs', 2000)),
            highlight_ms=_optional_ms(data.get('highlightMs')),
            dead_ms=_optional_ms(data.get('deadMs')),
        )
    except (TypeError, ValueError):
        return jsonify({'error': 'Invalid autoplay request'}), 400

    try:
        async def execute_start():
            handle = temporal_client.get_workflow_handle_for(MinesweeperWorkflow.run, game_id)
            return await handle.execute_update(MinesweeperWorkflow.start_autoplay_update, autoplay_request)

        started = asyncio.run(execute_start())
        return jsonify({'ok': started})

    except Exception as error:
        logger.error(f"Error starting autoplay: {error}")
        return jsonify({'error': 'Failed to start autoplay'}), 500


@app.route('/api/games/<game_id>/autoplay', methods=['DELETE'])
def stop_autoplay(game_id):
    """Stop autoplay on a game."""
    try:
        async def execute_stop():
            handle = temporal_client.get_workflow_handle_for(MinesweeperWorkflow.run, game_id)
            return await handle.execute_update(MinesweeperWorkflow.stop_autoplay_update)

        stopped = asyncio.run(execute_stop())
        return jsonify({'ok': stopped})

    except Exception as error:
        logger.error(f"Error stopping autoplay: {error}")
        return jsonify({'error': 'Failed to stop autoplay'}), 500


@app.route('/api/scores', methods=['GET'])
def get_scores():
    """Get the leaderboard, optionally filtered by board size."""
    try:
        limit = int(request.args.get('limit', 10))
    except ValueError:
        limit = 10
    size = request.args.get('size') or None

    try:
        rows = get_score_store().get_top_scores(limit=limit, size=size)
        return jsonify({'ok': True, 'data': [vars(row) for row in rows]})
    except sqlite3.Error as error:
        logger.error(f"GET /api/scores error: {error}")
        return jsonify({'ok': False, 'error': 'Failed to fetch scores'}), 500


@app.route('/api/scores', methods=['POST'])
def submit_score():
    """Record a finished game."""
    try:
        score = validate_score_payload(request.get_json(silent=True))
    except ScoreValidationError as error:
        return jsonify({'ok': False, 'error': f'Invalid payload: {error}'}), 400

    try:
        score_id = get_score_store().insert_score(**score)
        return jsonify({'ok': True, 'id': score_id})
    except sqlite3.Error as error:
        logger.error(f"POST /api/scores error: {error}")
        return jsonify({'ok': False, 'error': 'Failed to save score'}), 500


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'OK',
        'timestamp': datetime.now().isoformat()
    })


@app.route('/')
def index():
    """Serve the frontend."""
    return send_from_directory(app.static_folder, 'index.html')


@app.route('/<path:path>')
def serve_static(path):
    """Serve static files."""
    return send_from_directory(app.static_folder, path)


async def initialize_client():
    """Initialize Temporal client."""
    global temporal_client
    temporal_client = await get_temporal_client(settings)
    logger.info("Connected to Temporal server")


def main():
    """Start the Flask server."""
    try:
        asyncio.run(initialize_client())

        logger.info(f"Minesweeper server running on http://localhost:{settings.port}")
        logger.info("Make sure to start the Temporal worker in another terminal: python -m minesweeper.worker")

        app.run(host='0.0.0.0', port=settings.port, debug=False)

    except Exception as error:
        logger.error(f"Failed to start server: {error}")
        exit(1)


if __name__ == "__main__":
    main()
