from lobby import create_app, socketio

app = create_app()

if __name__ == '__main__':
    app.logger.info(f"Server listening on port {app.config['PORT']}")
    socketio.run(app, port=app.config['PORT'], debug=True)
