# -*- coding: utf-8 -*-
import os
import logging
import discord
from discord.ext import commands
import asyncio
import traceback
from dotenv import load_dotenv

from services.errors import AuctionError

load_dotenv()

INTENTS = discord.Intents.default()
INTENTS.message_content = True
INTENTS.members = False

bot = commands.Bot(command_prefix="!", intents=INTENTS, help_command=None)

@bot.event
async def on_ready():
    print(f"Logged in as {bot.user} (ID: {bot.user.id})")
    print("Loaded commands:", [c.name for c in bot.commands])
    await bot.change_presence(activity=discord.Game(name="!도움말"))

@bot.event
async def on_command_error(ctx, error):
    if isinstance(error, commands.CheckFailure):
        return await ctx.send("이미 **다른 채널**에서 경매가 진행 중입니다. 같은 채널에서 사용해 주세요.")
    if isinstance(error, commands.CommandNotFound):
        return await ctx.send("알 수 없는 명령어입니다. `!도움말`을 입력해 보세요.")
    original = getattr(error, "original", error)
    if isinstance(original, (AuctionError, ValueError)):
        return await ctx.send(f"⚠️ {original}")
    logging.getLogger("bot").error("command failed: %s", ctx.command, exc_info=original)
    await ctx.send(f"에러: {original.__class__.__name__}: {original}")

async def main():
    discord.utils.setup_logging(level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))
    try:
        await bot.load_extension("commands.auction")
        print("[OK] Loaded extension: commands.auction")
    except Exception as e:
        print("[ERR] Failed to load extension: commands.auction")
        traceback.print_exc()
        raise SystemExit(1) from e

    token = os.getenv("DISCORD_TOKEN")
    if not token:
        raise SystemExit("DISCORD_TOKEN 이 설정되지 않았습니다. .env 또는 환경변수로 지정하세요.")
    await bot.start(token)


if __name__ == "__main__":
    asyncio.run(main())
