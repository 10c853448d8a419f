# canutil

Tools and helpers for working with CAN and CAN FD on Linux:

- formatting CAN frames as lines of an ASC log,
- SAE J1939 socket addresses: parsing and printing them, plus a small
  command that exercises a J1939 socket,
- SLCAN serial adapters: attaching them, running them as a daemon, and
  bridging a pseudo-terminal that speaks the SLCAN ASCII protocol to a CAN
  interface,
- decoding the chip and driver state of Microchip MCP2517FD/MCP2518FD
  controllers from a device coredump or a regmap register file.

The package has no dependencies outside the standard library and needs
Python 3.10 or later. The commands that use sockets, ttys and line
disciplines (`testj1939`, `slcan_attach`, `slcand`, `slcanpty`) only work on
Linux with SocketCAN; the modules behind `slcan_attach`, `slcand` and
`slcanpty` import `fcntl` and `termios` and so load only on POSIX systems.

## Installation

```console
pip install canutil
```

To run the test suite:

```console
pip install "canutil[test]"
pytest
```

## Commands

### mcp251xfd-dump

Decodes the register and RAM state of an MCP251xFD controller and prints it
in readable form: a count of the RX and TX FIFOs, the controller registers,
every FIFO in use, and each object in the TEF, RX and TX rings.

```console
mcp251xfd-dump /var/log/devcoredump-19700101-234200.dump
mcp251xfd-dump /sys/kernel/debug/regmap/spi1.0-crc/registers
mcp251xfd-dump spi0.0
```

The argument can be a dev coredump file, a regmap `registers` file, or just
the name of an SPI device. The file is first read as a coredump and, if that
fails, as a regmap file. For a bare name (one without a `/`) the tool also
looks under `/sys/kernel/debug/regmap/<name>/registers` and then under
`/sys/kernel/debug/regmap/<name>-crc/registers`. `-h` or `--help` prints the
usage.

### slcan_attach

Attaches the SLCAN line discipline to a serial tty, optionally sending
set-up commands to the adapter first, and prints the name of the network
device that was created.

```console
slcan_attach -w -o -f -s6 -c /dev/ttyS1
slcan_attach /dev/ttyS1
slcan_attach -d /dev/ttyS1
slcan_attach -w -n can15 /dev/ttyS1
```

| option      | effect                                                 |
|-------------|--------------------------------------------------------|
| `-o`        | send the open command `O\r`                            |
| `-l`        | send the listen-only command `L\r` (overrides `-o`)    |
| `-c`        | send the close command `C\r` on detach                 |
| `-f`        | read the status flags with `F\r` to reset error states |
| `-s <0..8>` | set the CAN bitrate (10, 20, 50, 100, 125, 250, 500, 800, 1000 kbit/s) |
| `-b <btr>`  | set the bit time register value (up to 8 characters)   |
| `-d`        | only detach the line discipline                        |
| `-w`        | attach, wait for a key press, then detach              |
| `-n <name>` | rename the new network device                          |

### slcand

The same job as a daemon. It also sets the UART speed and flow control,
switches the tty to raw mode, and restores the old speeds when it stops.

```console
slcand -o -c -f -s6 ttyUSB0
slcand -o -c -f -s6 ttyUSB0 can0
slcand -o -c -f -s6 -S 115200 -t hw /dev/ttyUSB0
```

Besides `-o`, `-c`, `-f`, `-l`, `-s` and `-b` as for `slcan_attach`, it
takes `-S <baud>` for the UART speed, `-t hw|sw` for hardware or software
flow control, `-F` to stay in the foreground (log lines then go to standard
output instead of syslog), and `-h` for the usage. A second argument renames
the new network device. A tty name without `/dev/` in front is looked up
under `/dev/`. In the foreground, SIGINT or SIGTERM stops the daemon and its
exit status is 128 plus the signal number.

### slcanpty

Bridges a pseudo-terminal and a CAN interface, so that programs written for
a serial SLCAN adapter can use any SocketCAN interface.

```console
slcanpty /dev/ptmx can0
```

With `/dev/ptmx` it prints the name of the `/dev/pts/N` device the
application should open. It answers the SLCAN commands `O`, `C`, `V`, `v`,
`N`, `F`, `Z`, `S`, `s`, `U`, `X`, `m` and `M` (rejecting `P` and `A`),
turns `t`, `T`, `r` and `R` lines into CAN frames, and writes received CAN
frames back as SLCAN lines, with a millisecond timestamp when `Z1` is set.
Frames are only received after `O`. When standard input is selectable, any
input on it (or its end) stops the bridge.

### testj1939

A small tool that shows the J1939 socket interface at work.

```console
testj1939 can1 20
testj1939 -r can0:0x80
testj1939 -s8 can0:0x20 :0x30,0xee00
```

`FROM` and `TO` are `-` or `[IFACE][:[SA][,[PGN][,NAME]]]`; the numbers are
read as in C, so `0x` marks hexadecimal and a leading `0` octal.

| option      | effect                                              |
|-------------|-----------------------------------------------------|
| `-v`        | print the socket calls made                         |
| `-s[LEN]`   | send `LEN` (default 8, at most 128) bytes of test data |
| `-r`        | receive and print packets                           |
| `-e`        | echo received packets back                          |
| `-c`        | connect to `TO`                                     |
| `-p PRIO`   | set the send priority                               |
| `-P`        | promiscuous mode                                    |
| `-b`        | bind with SA+1 first, then rebind with SA           |
| `-B`        | allow broadcast                                     |
| `-o`        | omit the bind                                       |
| `-n`        | print 64-bit NAMEs of senders                       |
| `-w[TIME]`  | return after `TIME` (default 1) seconds             |

## Library use

### CAN frames

`canutil.can.CanFrame` holds one Classical CAN or CAN FD frame (`fd=True`).
It tells whether the frame is extended (`is_extended()`), a remote request
(`is_rtr()`) or an error frame (`is_error()`), and gives its
`arbitration_id()`. `can_fd_len2dlc()` maps a payload length to its DLC.
The module also holds the usual CAN constants (`CAN_EFF_FLAG`,
`CAN_SFF_MASK`, `CAN_MTU`, `CANFD_MTU`, ...).

`canutil.bits` has the bit-field helpers used throughout: `bit`, `genmask`,
`field_get`, `field_prep`, `get_canfd_dlc` and `can_dlc2len`.

### ASC output

`canutil.log2asc` builds the pieces of an ASC log: `format_banner` for the
header, `relative_time` and `format_timestamp` for the time column, and
`format_can_asc` and `format_canfd_asc` for the frames themselves.

```python
from canutil.can import CanFrame
from canutil.log2asc import format_can_asc, format_timestamp, relative_time

sec, usec = relative_time(1700000001, 250000, 1700000000, 0)
frame = CanFrame(0x123, b"\x11\x22")
print(format_timestamp(sec, usec) + " " + format_can_asc(frame, 1))
```

### J1939 addresses

`canutil.j1939` parses and prints J1939 socket addresses held in a
`J1939Address`:

```python
from canutil.j1939 import str2addr, addr2str

address = str2addr("can0:20,0ee00")
print(addr2str(address))
```

`str2addr` reads hexadecimal numbers; a two digit number is a source
address, a longer one a NAME. `parse_canaddr` applies the
`[IFACE][:[SA][,[PGN][,NAME]]]` form used on the `testj1939` command line to
an existing address. `interface_index` and `interface_name` look interfaces
up by name or number.

### SLCAN

`canutil.slcanpty.SlcanTranslator.feed()` takes raw bytes from an SLCAN
application and returns the reply bytes and the `CanFrame`s to send;
`frame_to_slcan()` encodes a frame as an SLCAN line.
`canutil.slcan_attach.setup_commands()` gives the set-up commands sent to an
adapter, and `canutil.slcand` has `uart_speed()` and `tty_path()`.

### MCP251xFD state

```python
from canutil.mcp251xfd.dumptool import load_state
from canutil.mcp251xfd.ramdump import dump

state = load_state("/var/log/devcoredump-19700101-234200.dump")
print(dump(state))
```

The lower layers are usable on their own: `canutil.mcp251xfd.registers`
holds the register map, `canutil.mcp251xfd.coredump` parses coredumps
(`parse_coredump`, `read_coredump`) into a `ChipState`,
`canutil.mcp251xfd.regmap` reads register files (`parse_regmap`,
`read_regmap`), `canutil.mcp251xfd.regdump` formats the registers of a
`RegisterSnapshot`, and `canutil.mcp251xfd.ramdump` lays out and formats the
rings. A malformed coredump, or a file that is neither a coredump nor a
register file, raises `DumpError`.

## What it does not do

There is no command that converts log files to ASC: `canutil.log2asc` only
formats frames and timestamps, and the package has no parser for compact
CAN log lines, so reading the input and building `CanFrame` objects is up to
the caller. Likewise there is no tool that dumps, sends or generates CAN
traffic on its own beyond what `testj1939` and `slcanpty` do.