"""Interactive window that shows the smoke simulation and takes mouse and key input."""

from __future__ import annotations

import argparse

import numpy as np
import pygame

from .solver import FluidSolver
from .view import FluidView, Key

TEXT_WIDTH = 250
TEXT_HEIGHT = 300
TIMER_MS = 25

_WHITE = (255, 255, 255)
_BLUE = (0, 0, 255)
_GRID = (125, 125, 125)
_PANEL = (255, 235, 235)
_HEADER_TEXT = (255, 0, 0)
_GUIDE_TEXT = (0, 0, 0)

_CHAR_ALIASES = {"=": Key.VISCOSITY_UP, "_": Key.VISCOSITY_DOWN}
_KEYCODES = {
    pygame.K_EQUALS: Key.VISCOSITY_UP,
    pygame.K_PLUS: Key.VISCOSITY_UP,
    pygame.K_KP_PLUS: Key.VISCOSITY_UP,
    pygame.K_MINUS: Key.VISCOSITY_DOWN,
    pygame.K_UNDERSCORE: Key.VISCOSITY_DOWN,
    pygame.K_KP_MINUS: Key.VISCOSITY_DOWN,
}


def _key_from_char(char: str) -> Key | None:
    char = char.upper()
    try:
        return Key(char)
    except ValueError:
        return _CHAR_ALIASES.get(char)


def key_from_event(key: int, unicode: str = "") -> Key | None:
    """The command bound to a key press, or None when the key has none."""
    if unicode:
        command = _key_from_char(unicode)
        if command is not None:
            return command
    if key in _KEYCODES:
        return _KEYCODES[key]
    if 0 <= key < 128:
        return _key_from_char(chr(key))
    return None


def draw(surface: pygame.Surface, view: FluidView, font: pygame.font.Font | None = None) -> None:
    """Render the fluid region and the side panel onto surface."""
    size, dx = view.window_size, view.dx
    solver = view.solver
    n = solver.n
    surface.fill(_WHITE, pygame.Rect(0, 0, size + 1, size + 1))

    if view.show_density:
        for j in range(n):
            for i in range(n):
                shade = view.cell_shade(i, j)
                surface.fill((shade, shade, shade), pygame.Rect(i * dx, j * dx, dx, dx))

    if view.show_velocity:
        for j in range(n):
            for i in range(n):
                vx, vy = solver.velocity[solver.index(i, j)]
                if not (np.isfinite(vx) and np.isfinite(vy)):
                    continue
                start = (i * dx, j * dx)
                end = (int(i * dx + vx * dx), int(j * dx + vy * dx))
                pygame.draw.line(surface, _BLUE, start, end)

    if view.show_grid:
        for cell in range(n):
            offset = (cell + 1) * dx
            pygame.draw.line(surface, _GRID, (0, offset), (size, offset))
            pygame.draw.line(surface, _GRID, (offset, 0), (offset, size))

    surface.fill(_PANEL, pygame.Rect(size + 1, 0, TEXT_WIDTH, TEXT_HEIGHT))
    if font is None:
        return
    for number, line in enumerate(view.status_lines()):
        if number < 2:
            x, y, colour = 3, 10 + 20 * number, _HEADER_TEXT
        else:
            x = 3 if number == 2 else 8
            y, colour = 55 + 20 * (number - 2), _GUIDE_TEXT
        surface.blit(font.render(line, True, colour), (size + 1 + x, y))


def _handle(event: pygame.event.Event, view: FluidView) -> None:
    if event.type == pygame.KEYDOWN:
        command = key_from_event(event.key, getattr(event, "unicode", ""))
        if command is not None:
            view.key_down(command)
    elif event.type == pygame.MOUSEBUTTONDOWN:
        if event.button == 1:
            view.left_down(*event.pos)
        elif event.button == 3:
            view.right_down(*event.pos)
    elif event.type == pygame.MOUSEBUTTONUP:
        if event.button == 1:
            view.left_up()
        elif event.button == 3:
            view.right_up()
    elif event.type == pygame.MOUSEMOTION:
        view.mouse_move(*event.pos)


def main(argv: list[str] | None = None) -> int:
    """Open the simulation window and run until it is closed."""
    parser = argparse.ArgumentParser(description="Interactive two-dimensional smoke simulation.")
    parser.add_argument("--grid", type=int, default=60, help="grid points per side")
    parser.add_argument("--size", type=int, default=600, help="fluid region size in pixels")
    args = parser.parse_args(argv)
    try:
        view = FluidView(FluidSolver(n=args.grid), window_size=args.size)
    except ValueError as error:
        parser.error(str(error))

    pygame.init()
    try:
        screen = pygame.display.set_mode(
            (args.size + 1 + TEXT_WIDTH, max(args.size + 1, TEXT_HEIGHT))
        )
        pygame.display.set_caption("Stable Fluids")
        font = pygame.font.Font(None, 18)
        clock = pygame.time.Clock()
        last_tick = pygame.time.get_ticks()
        running = True
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                else:
                    _handle(event, view)
            now = pygame.time.get_ticks()
            if view.animating and now - last_tick >= TIMER_MS:
                view.tick()
                last_tick = now
            elif not view.animating:
                last_tick = now
            draw(screen, view, font)
            pygame.display.flip()
            clock.tick(60)
    finally:
        pygame.quit()
    return 0