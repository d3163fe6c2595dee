from jobillo import create_app
from jobillo.sockets.socketio import socketio


app = create_app()


if __name__ == "__main__":
    host = app.config['HOST']
    port = app.config['PORT']
    app.logger.info("Jobillo interview server on http://%s:%s (%s)", host, port, app.config['APP_ENV'])
    socketio.run(
        app,
        host=host,
        port=port,
        debug=app.config['APP_ENV'] == 'development',
        allow_unsafe_werkzeug=True,
    )
