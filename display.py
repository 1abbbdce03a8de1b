"""
CHIP-8 Display Surface
64x32 monochrome cell grid with XOR sprite compositing
"""

from PIL import Image

from utils import debug_print

WIDTH = 64
HEIGHT = 32
PIXEL_ON = 0xFFFFFFFF
PIXEL_OFF = 0x00000000
SPRITE_WIDTH = 8


class Display:
    def __init__(self):
        # One 32-bit cell per pixel so hosts can upload it as an RGBA texture
        self.screen = [PIXEL_OFF] * (WIDTH * HEIGHT)
        # Set whenever the surface changed; the host clears it after redrawing
        self.draw_flag = True

    def reset(self):
        """Blank the surface and request a redraw"""
        self.clear()

    def clear(self):
        """Turn every cell off"""
        for i in range(len(self.screen)):
            self.screen[i] = PIXEL_OFF
        self.draw_flag = True

    def get_pixel(self, x, y):
        return self.screen[y * WIDTH + x] == PIXEL_ON

    def draw_sprite(self, x, y, rows):
        """XOR an 8-pixel-wide sprite onto the surface.

        The origin wraps to the surface, the sprite body is clipped at the
        right and bottom edges. Returns True if any lit cell was turned off.
        """
        x %= WIDTH
        y %= HEIGHT
        collision = False

        for row, pixels in enumerate(rows):
            py = y + row
            if py >= HEIGHT:
                break
            base = py * WIDTH
            for col in range(SPRITE_WIDTH):
                px = x + col
                if px >= WIDTH:
                    break
                if not pixels & (0x80 >> col):
                    continue
                index = base + px
                if self.screen[index] == PIXEL_ON:
                    collision = True
                self.screen[index] ^= PIXEL_ON

        self.draw_flag = True
        return collision

    def lit_count(self):
        """Number of cells currently on"""
        return sum(1 for cell in self.screen if cell == PIXEL_ON)

    def to_rgba_bytes(self):
        """Pack the surface as RGBA bytes, four per cell, row-major"""
        return b"".join(cell.to_bytes(4, "little") for cell in self.screen)

    def to_image(self, scale=1):
        """Render the surface as an opaque Pillow image, optionally scaled up"""
        cells = Image.frombytes("RGBA", (WIDTH, HEIGHT), self.to_rgba_bytes())
        # Unlit cells have zero alpha; composite them over black
        img = Image.new("RGBA", (WIDTH, HEIGHT), (0, 0, 0, 255))
        img.alpha_composite(cells)
        if scale > 1:
            img = img.resize((WIDTH * scale, HEIGHT * scale), Image.Resampling.NEAREST)
        return img

    def save_screenshot(self, filename, scale=1):
        """Save the surface to an image file; returns the path written"""
        img = self.to_image(scale)
        lower = filename.lower()
        if lower.endswith(".jpg") or lower.endswith(".jpeg"):
            # JPEG has no alpha channel
            img.convert("RGB").save(filename, "JPEG", quality=95)
        else:
            if not lower.endswith(".png"):
                filename += ".png"
            img.save(filename, "PNG")
        debug_print(f"Display: screenshot saved as {filename}")
        return filename
