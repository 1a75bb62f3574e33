from .start_handler import run

run()
