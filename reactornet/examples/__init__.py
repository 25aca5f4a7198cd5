"""Example programs built on reactornet: an echo server and a chat server."""