# dmgcore

dmgcore holds the core pieces of a Game Boy (DMG) emulator:

- `dmgcore.cpu.Cpu` is a CPU that counts cycles and covers the full main and CB-prefixed opcode maps. It reaches memory, the clock and interrupts only through a `CpuContext` object that you supply.
- `dmgcore.cartridge` parses and validates the cartridge header. It reads the title, the controller type, the ROM size and the RAM size, and it detects MBC1 multicarts.
- `dmgcore.bootrom` identifies a boot ROM by its CRC32 and finds boot ROM files on disk.
- `dmgcore.model`, `dmgcore.config`, `dmgcore.gameboy` and `dmgcore.emulation` hold the small shared types:
  - hardware models and their boot ROM file names
  - `HardwareConfig`
  - screen constants and `Color`
  - `EmuTime` and `EmuEvents`

## Installation

```
pip install .
```

To include the test dependencies:

```
pip install .[test]
```

## Running the CPU

The CPU owns no memory. Each bus access goes through a `CpuContext` subclass, and that subclass also advances the clock and reports pending interrupts. `read_cycle_high` and `write_cycle_high` come with default versions, which map onto `0xFF00 | addr`.

```python
from dmgcore.cpu import Cpu
from dmgcore.processor import CpuContext, InterruptLine, Step


class FlatMemory(CpuContext):
    def __init__(self, program: bytes):
        self.memory = bytearray(0x10000)
        self.memory[: len(program)] = program
        self.t_cycles = 0

    def read_cycle(self, addr):
        self.t_cycles += 4
        return self.memory[addr]

    def write_cycle(self, addr, data):
        self.t_cycles += 4
        self.memory[addr] = data

    def tick_cycle(self):
        self.t_cycles += 4

    def get_mid_interrupt(self):
        return InterruptLine(0)

    def get_end_interrupt(self):
        return InterruptLine(0)

    def ack_interrupt(self, mask):
        pass

    def debug_opcode_callback(self):
        pass


ctx = FlatMemory(bytes([0x3E, 0x42, 0x76]))  # LD A, 0x42 ; HALT
cpu = Cpu()
step = Step.RUNNING
while step is not Step.HALT:
    step = cpu.execute_step(ctx, step)
print(cpu.regs.a)  # 66
print(cpu)         # register dump: PC, SP, A, F, B, C, D, E, H, L
```

Each instruction runs and then prefetches the next opcode. `execute_step` returns one of three values:

- `Step.RUNNING`
- `Step.HALT`
- `Step.INTERRUPT_DISPATCH`, which is returned when `ime` is set and `get_mid_interrupt()` reports a pending line.

When an interrupt is dispatched, the CPU acknowledges the lowest pending line and jumps to that line's vector (`0x40`, `0x48`, `0x50`, `0x58` or `0x60`).

Two cases raise `RuntimeError`:

- `STOP` (opcode `0x10`)
- the undefined opcodes (`0xD3`, `0xDB`, `0xDD`, `0xE3`, `0xE4`, `0xEB`, `0xEC`, `0xED`, `0xF4`, `0xFC`, `0xFD`)

Opcode `0x40` (`LD B, B`) calls `ctx.debug_opcode_callback()`.

`dmgcore.registers.RegisterFile` holds the registers. It has 16-bit access through `read16`/`write16` with `Reg16`, and flag properties `zf`, `nf`, `hf` and `cf`. Writing `AF` keeps only the upper four bits of F.

## Cartridges

```python
from dmgcore.cartridge import Cartridge, CartridgeError

try:
    cartridge = Cartridge.from_path("game.gb")
except CartridgeError as exc:
    print(exc)  # e.g. "Invalid cartridge: Unsupported cartridge type 42"
    cartridge = Cartridge.no_cartridge()

print(cartridge.title, cartridge.cartridge_type, cartridge.rom_size, cartridge.ram_size)
```

`Cartridge.from_data` raises `CartridgeError` in these cases:

- the image is shorter than 32 KiB, or its length is not a multiple of 16 KiB
- the title is not valid UTF-8
- the type code, ROM size code or RAM size code is unknown
- the RAM size contradicts the controller type
- the length does not match the ROM size in the header

`from_path` lets `OSError` propagate.

## Boot ROMs and configuration

```python
from dmgcore.bootrom import Bootrom, bootroms_dir
from dmgcore.config import HardwareConfig
from dmgcore.model import Model

bootrom = Bootrom.lookup([Model.DMG])
if bootrom is not None:
    config = HardwareConfig(model=bootrom.model, bootrom=bootrom.data, cartridge=cartridge)
```

`Bootrom.from_data` takes exactly 256 bytes. Any other length raises `ValueError`. The CRC32 of the data must match one of the known models (DMG0, DMG, MGB, SGB, SGB2), and otherwise it raises `BootromChecksumError`. `Bootrom.from_path` wraps read failures in `BootromError`.

`Bootrom.lookup` builds its list of candidates in two passes:

1. The directory returned by `bootroms_dir()`, which is a `bootroms` folder in the user data directory for `dmgcore`.
2. The current working directory.

Within each directory it tries the given models in order, looking for each model's file name, for example `dmg_boot.bin`. If no models are given, it uses `DEFAULT_MODEL_PRIORITY`. It skips files that are missing, logs a warning for files that are unreadable or unrecognised, and returns `None` when nothing matches.

`Bootrom.save_to_data_dir()` writes the image into that directory and returns the path it wrote.

## What this package does not do

This package covers the CPU, the cartridge header and boot ROM identification. It does not provide the rest of a Game Boy:

- no memory bus or memory bank controller emulation
- no video (PPU) rendering
- no sound
- no timer or joypad hardware
- no save files
- no command-line program or window

To run the CPU you supply your own `CpuContext`.

## Running the tests

```
pytest
```