"""
Image captcha bound to a short-lived KV key.
"""

import base64
import io
import logging
import random
import secrets
import uuid
from typing import Optional

from PIL import Image, ImageDraw, ImageFilter, ImageFont
from pydantic import BaseModel

from admin_backend.redis import KVClient

logger = logging.getLogger(__name__)

# no 0/O, 1/I/L
CAPTCHA_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

IMAGE_WIDTH = 160
IMAGE_HEIGHT = 60


class CaptchaChallenge(BaseModel):
    uuid: str
    image: str
    img_type: str = "base64"


class CaptchaIssuer:

    def __init__(self, kv: KVClient, prefix: str = "auth:captcha", ttl: int = 300, length: int = 4):
        self.kv = kv
        self.prefix = prefix
        self.ttl = ttl
        self.length = length
        self._random = random.Random()

    def key(self, captcha_uuid: str) -> str:
        return f"{self.prefix}:{captcha_uuid}"

    def generate_code(self) -> str:
        return "".join(secrets.choice(CAPTCHA_ALPHABET) for _ in range(self.length))

    def render(self, code: str) -> bytes:
        """Draw ``code`` as a noisy PNG and return the encoded bytes"""
        rnd = self._random
        image = Image.new("RGB", (IMAGE_WIDTH, IMAGE_HEIGHT))
        draw = ImageDraw.Draw(image)

        start = (rnd.randint(200, 240), rnd.randint(200, 240), rnd.randint(200, 240))
        end = (rnd.randint(160, 200), rnd.randint(160, 200), rnd.randint(160, 200))
        for x in range(IMAGE_WIDTH):
            ratio = x / IMAGE_WIDTH
            color = tuple(int(s + (e - s) * ratio) for s, e in zip(start, end))
            draw.line([(x, 0), (x, IMAGE_HEIGHT)], fill=color)

        font = ImageFont.load_default(size=36)
        slot = IMAGE_WIDTH // max(len(code), 1)
        for index, char in enumerate(code):
            glyph = Image.new("RGBA", (slot + 10, IMAGE_HEIGHT), (0, 0, 0, 0))
            ImageDraw.Draw(glyph).text(
                (5, rnd.randint(2, 10)),
                char,
                font=font,
                fill=(rnd.randint(10, 120), rnd.randint(10, 120), rnd.randint(10, 120), 255),
            )
            glyph = glyph.rotate(rnd.uniform(-25, 25), resample=Image.Resampling.BICUBIC)
            image.paste(glyph, (index * slot - 2, 0), glyph)

        for _ in range(5):
            draw.line(
                [(rnd.randint(0, IMAGE_WIDTH), rnd.randint(0, IMAGE_HEIGHT)),
                 (rnd.randint(0, IMAGE_WIDTH), rnd.randint(0, IMAGE_HEIGHT))],
                fill=(rnd.randint(60, 180), rnd.randint(60, 180), rnd.randint(60, 180)),
                width=2,
            )
        for _ in range(150):
            draw.point(
                (rnd.randint(0, IMAGE_WIDTH - 1), rnd.randint(0, IMAGE_HEIGHT - 1)),
                fill=(rnd.randint(0, 255), rnd.randint(0, 255), rnd.randint(0, 255)),
            )

        image = image.filter(ImageFilter.SMOOTH)
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    async def issue(self) -> CaptchaChallenge:
        code = self.generate_code()
        captcha_uuid = str(uuid.uuid4())
        await self.store(captcha_uuid, code)
        image = base64.b64encode(self.render(code)).decode("ascii")
        return CaptchaChallenge(uuid=captcha_uuid, image=image)

    async def store(self, captcha_uuid: str, code: str):
        await self.kv.set(self.key(captcha_uuid), code, ex=self.ttl)

    async def consume(self, captcha_uuid: Optional[str], answer: Optional[str]) -> bool:
        """
        Compare ``answer`` with the stored code, case-insensitively.

        The entry is read and deleted in one step whatever the outcome, so
        every captcha allows exactly one attempt, even under concurrent logins.
        """
        if not captcha_uuid:
            return False

        stored = await self.kv.getdel(self.key(captcha_uuid))

        if stored is None or not answer:
            return False
        return stored.lower() == answer.strip().lower()
