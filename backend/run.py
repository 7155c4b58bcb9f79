import os

from familygames import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Socket.IO server so the /ws namespace works in development
    port = int(os.environ.get('PORT', 5000))
    socketio.run(app, host='0.0.0.0', port=port, debug=True)
