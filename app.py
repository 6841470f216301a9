import logging

from pyngrok import ngrok

from docprep import create_app
from docprep.config import Config

logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    format='[%(asctime)s] %(levelname)s in %(module)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

app = create_app()

with app.test_request_context():
    for rule in app.url_map.iter_rules():
        app.logger.debug(f"{rule} -> methods: {','.join(sorted(rule.methods - {'HEAD', 'OPTIONS'}))}")


if __name__ == '__main__':
    public_url = None
    if Config.USE_NGROK:
        public_url = ngrok.connect(Config.PORT)
        print(f"🔗 Public URL: {public_url}")
    else:
        print("🚫 Ngrok is disabled.")

    try:
        app.run(host="0.0.0.0", port=Config.PORT, debug=True)
    finally:
        if public_url is not None:
            ngrok.kill()
            print("✅ Ngrok process terminated.")
