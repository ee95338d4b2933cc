"""
Greeter script for the reload demo.

Edit greet() while reload_demo.py is running and watch the output change.
"""


class Greeter:
    def __init__(self):
        self.name = 'World'

    def greet(self):
        return f'Hello, {self.name}!'
