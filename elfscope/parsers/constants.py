"""
ELF Constants
==============

Numeric codes defined by the System V gABI together with the lookup tables
that map them to display names.  The decoding layer only needs a handful of
these (identification values, section types used for record dispatch, the
absolute-symbol sentinel); the name tables exist for presentation code.

References:
    - TIS Committee. (1995). Tool Interface Standard (TIS) Executable and
      Linkable Format (ELF) Specification, Version 1.2.
    - System V Application Binary Interface, Edition 4.1.
    - Linux man page: elf(5).
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Identification
# ---------------------------------------------------------------------------

ELF_MAGIC: bytes = b"\x7fELF"
EI_NIDENT: int = 16

# e_ident indices
EI_MAG0: int = 0
EI_CLASS: int = 4
EI_DATA: int = 5
EI_VERSION: int = 6
EI_OSABI: int = 7
EI_ABIVERSION: int = 8

# ELF Class (32-bit vs 64-bit)
ELFCLASSNONE: int = 0
ELFCLASS32: int = 1
ELFCLASS64: int = 2

# Data encoding (endianness)
ELFDATANONE: int = 0
ELFDATA2LSB: int = 1  # Little-endian
ELFDATA2MSB: int = 2  # Big-endian

OSABI_NAMES: dict[int, str] = {
    0: "UNIX - System V",
    1: "UNIX - HP-UX",
    2: "UNIX - NetBSD",
    3: "UNIX - GNU",
    6: "UNIX - Solaris",
    7: "UNIX - AIX",
    8: "UNIX - IRIX",
    9: "UNIX - FreeBSD",
    10: "UNIX - TRU64",
    11: "Novell - Modesto",
    12: "UNIX - OpenBSD",
    13: "VMS - OpenVMS",
    14: "HP - Non-Stop Kernel",
    15: "AROS",
    16: "FenixOS",
    17: "Nuxi CloudABI",
    97: "ARM",
    255: "Standalone App",
}

# ---------------------------------------------------------------------------
# Object file type
# ---------------------------------------------------------------------------

ET_NONE: int = 0
ET_REL: int = 1   # Relocatable
ET_EXEC: int = 2  # Executable
ET_DYN: int = 3   # Shared object / PIE
ET_CORE: int = 4  # Core dump

ET_NAMES: dict[int, str] = {
    ET_NONE: "NONE",
    ET_REL: "REL (Relocatable)",
    ET_EXEC: "EXEC (Executable)",
    ET_DYN: "DYN (Shared object)",
    ET_CORE: "CORE (Core dump)",
}

# ---------------------------------------------------------------------------
# Machine architectures
# ---------------------------------------------------------------------------

EM_NONE: int = 0
EM_SPARC: int = 2
EM_386: int = 3
EM_68K: int = 4
EM_MIPS: int = 8
EM_PARISC: int = 15
EM_PPC: int = 20
EM_PPC64: int = 21
EM_S390: int = 22
EM_ARM: int = 40
EM_SH: int = 42
EM_SPARCV9: int = 43
EM_IA_64: int = 50
EM_X86_64: int = 62
EM_AVR: int = 83
EM_XTENSA: int = 94
EM_AARCH64: int = 183
EM_AMDGPU: int = 224
EM_RISCV: int = 243
EM_BPF: int = 247
EM_LOONGARCH: int = 258

EM_NAMES: dict[int, str] = {
    EM_NONE: "None",
    EM_SPARC: "SPARC",
    EM_386: "Intel 80386",
    EM_68K: "Motorola 68000",
    EM_MIPS: "MIPS R3000",
    EM_PARISC: "HPPA",
    EM_PPC: "PowerPC",
    EM_PPC64: "PowerPC64",
    EM_S390: "IBM S/390",
    EM_ARM: "ARM",
    EM_SH: "Renesas / SuperH SH",
    EM_SPARCV9: "SPARC v9",
    EM_IA_64: "Intel IA-64",
    EM_X86_64: "Advanced Micro Devices X86-64",
    EM_AVR: "Atmel AVR 8-bit",
    EM_XTENSA: "Tensilica Xtensa",
    EM_AARCH64: "AArch64",
    EM_AMDGPU: "AMD GPU",
    EM_RISCV: "RISC-V",
    EM_BPF: "Linux BPF",
    EM_LOONGARCH: "LoongArch",
}

# ---------------------------------------------------------------------------
# Section header types and flags
# ---------------------------------------------------------------------------

SHT_NULL: int = 0
SHT_PROGBITS: int = 1
SHT_SYMTAB: int = 2
SHT_STRTAB: int = 3
SHT_RELA: int = 4
SHT_HASH: int = 5
SHT_DYNAMIC: int = 6
SHT_NOTE: int = 7
SHT_NOBITS: int = 8
SHT_REL: int = 9
SHT_SHLIB: int = 10
SHT_DYNSYM: int = 11
SHT_INIT_ARRAY: int = 14
SHT_FINI_ARRAY: int = 15
SHT_PREINIT_ARRAY: int = 16
SHT_GROUP: int = 17
SHT_SYMTAB_SHNDX: int = 18
SHT_GNU_HASH: int = 0x6FFFFFF6
SHT_GNU_VERDEF: int = 0x6FFFFFFD
SHT_GNU_VERNEED: int = 0x6FFFFFFE
SHT_GNU_VERSYM: int = 0x6FFFFFFF

SHT_NAMES: dict[int, str] = {
    SHT_NULL: "NULL",
    SHT_PROGBITS: "PROGBITS",
    SHT_SYMTAB: "SYMTAB",
    SHT_STRTAB: "STRTAB",
    SHT_RELA: "RELA",
    SHT_HASH: "HASH",
    SHT_DYNAMIC: "DYNAMIC",
    SHT_NOTE: "NOTE",
    SHT_NOBITS: "NOBITS",
    SHT_REL: "REL",
    SHT_SHLIB: "SHLIB",
    SHT_DYNSYM: "DYNSYM",
    SHT_INIT_ARRAY: "INIT_ARRAY",
    SHT_FINI_ARRAY: "FINI_ARRAY",
    SHT_PREINIT_ARRAY: "PREINIT_ARRAY",
    SHT_GROUP: "GROUP",
    SHT_SYMTAB_SHNDX: "SYMTAB_SHNDX",
    SHT_GNU_HASH: "GNU_HASH",
    SHT_GNU_VERDEF: "GNU_VERDEF",
    SHT_GNU_VERNEED: "GNU_VERNEED",
    SHT_GNU_VERSYM: "GNU_VERSYM",
}

SHF_WRITE: int = 0x1
SHF_ALLOC: int = 0x2
SHF_EXECINSTR: int = 0x4
SHF_MERGE: int = 0x10
SHF_STRINGS: int = 0x20
SHF_INFO_LINK: int = 0x40
SHF_LINK_ORDER: int = 0x80
SHF_OS_NONCONFORMING: int = 0x100
SHF_GROUP: int = 0x200
SHF_TLS: int = 0x400
SHF_COMPRESSED: int = 0x800

# Single-letter keys in the style of ``readelf -S``
SHF_LETTERS: dict[int, str] = {
    SHF_WRITE: "W",
    SHF_ALLOC: "A",
    SHF_EXECINSTR: "X",
    SHF_MERGE: "M",
    SHF_STRINGS: "S",
    SHF_INFO_LINK: "I",
    SHF_LINK_ORDER: "L",
    SHF_OS_NONCONFORMING: "O",
    SHF_GROUP: "G",
    SHF_TLS: "T",
    SHF_COMPRESSED: "C",
}

# Special section indices
SHN_UNDEF: int = 0
SHN_ABS: int = 0xFFF1
SHN_COMMON: int = 0xFFF2

# ---------------------------------------------------------------------------
# Program header types and flags
# ---------------------------------------------------------------------------

PT_NULL: int = 0
PT_LOAD: int = 1
PT_DYNAMIC: int = 2
PT_INTERP: int = 3
PT_NOTE: int = 4
PT_SHLIB: int = 5
PT_PHDR: int = 6
PT_TLS: int = 7
PT_GNU_EH_FRAME: int = 0x6474E550
PT_GNU_STACK: int = 0x6474E551
PT_GNU_RELRO: int = 0x6474E552
PT_GNU_PROPERTY: int = 0x6474E553

PT_NAMES: dict[int, str] = {
    PT_NULL: "NULL",
    PT_LOAD: "LOAD",
    PT_DYNAMIC: "DYNAMIC",
    PT_INTERP: "INTERP",
    PT_NOTE: "NOTE",
    PT_SHLIB: "SHLIB",
    PT_PHDR: "PHDR",
    PT_TLS: "TLS",
    PT_GNU_EH_FRAME: "GNU_EH_FRAME",
    PT_GNU_STACK: "GNU_STACK",
    PT_GNU_RELRO: "GNU_RELRO",
    PT_GNU_PROPERTY: "GNU_PROPERTY",
}

PF_X: int = 0x1  # Execute
PF_W: int = 0x2  # Write
PF_R: int = 0x4  # Read

# ---------------------------------------------------------------------------
# Symbols
# ---------------------------------------------------------------------------

STB_LOCAL: int = 0
STB_GLOBAL: int = 1
STB_WEAK: int = 2
STB_GNU_UNIQUE: int = 10

STB_NAMES: dict[int, str] = {
    STB_LOCAL: "LOCAL",
    STB_GLOBAL: "GLOBAL",
    STB_WEAK: "WEAK",
    STB_GNU_UNIQUE: "UNIQUE",
}

STT_NOTYPE: int = 0
STT_OBJECT: int = 1
STT_FUNC: int = 2
STT_SECTION: int = 3
STT_FILE: int = 4
STT_COMMON: int = 5
STT_TLS: int = 6
STT_GNU_IFUNC: int = 10

STT_NAMES: dict[int, str] = {
    STT_NOTYPE: "NOTYPE",
    STT_OBJECT: "OBJECT",
    STT_FUNC: "FUNC",
    STT_SECTION: "SECTION",
    STT_FILE: "FILE",
    STT_COMMON: "COMMON",
    STT_TLS: "TLS",
    STT_GNU_IFUNC: "IFUNC",
}

STV_DEFAULT: int = 0
STV_INTERNAL: int = 1
STV_HIDDEN: int = 2
STV_PROTECTED: int = 3

STV_NAMES: dict[int, str] = {
    STV_DEFAULT: "DEFAULT",
    STV_INTERNAL: "INTERNAL",
    STV_HIDDEN: "HIDDEN",
    STV_PROTECTED: "PROTECTED",
}

# ---------------------------------------------------------------------------
# Dynamic tags
# ---------------------------------------------------------------------------

DT_NULL: int = 0
DT_NEEDED: int = 1
DT_PLTRELSZ: int = 2
DT_PLTGOT: int = 3
DT_HASH: int = 4
DT_STRTAB: int = 5
DT_SYMTAB: int = 6
DT_RELA: int = 7
DT_RELASZ: int = 8
DT_RELAENT: int = 9
DT_STRSZ: int = 10
DT_SYMENT: int = 11
DT_INIT: int = 12
DT_FINI: int = 13
DT_SONAME: int = 14
DT_RPATH: int = 15
DT_SYMBOLIC: int = 16
DT_REL: int = 17
DT_RELSZ: int = 18
DT_RELENT: int = 19
DT_PLTREL: int = 20
DT_DEBUG: int = 21
DT_TEXTREL: int = 22
DT_JMPREL: int = 23
DT_BIND_NOW: int = 24
DT_INIT_ARRAY: int = 25
DT_FINI_ARRAY: int = 26
DT_INIT_ARRAYSZ: int = 27
DT_FINI_ARRAYSZ: int = 28
DT_RUNPATH: int = 29
DT_FLAGS: int = 30
DT_PREINIT_ARRAY: int = 32
DT_PREINIT_ARRAYSZ: int = 33
DT_GNU_HASH: int = 0x6FFFFEF5
DT_VERSYM: int = 0x6FFFFFF0
DT_RELACOUNT: int = 0x6FFFFFF9
DT_RELCOUNT: int = 0x6FFFFFFA
DT_FLAGS_1: int = 0x6FFFFFFB
DT_VERNEED: int = 0x6FFFFFFE
DT_VERNEEDNUM: int = 0x6FFFFFFF

DT_NAMES: dict[int, str] = {
    DT_NULL: "NULL",
    DT_NEEDED: "NEEDED",
    DT_PLTRELSZ: "PLTRELSZ",
    DT_PLTGOT: "PLTGOT",
    DT_HASH: "HASH",
    DT_STRTAB: "STRTAB",
    DT_SYMTAB: "SYMTAB",
    DT_RELA: "RELA",
    DT_RELASZ: "RELASZ",
    DT_RELAENT: "RELAENT",
    DT_STRSZ: "STRSZ",
    DT_SYMENT: "SYMENT",
    DT_INIT: "INIT",
    DT_FINI: "FINI",
    DT_SONAME: "SONAME",
    DT_RPATH: "RPATH",
    DT_SYMBOLIC: "SYMBOLIC",
    DT_REL: "REL",
    DT_RELSZ: "RELSZ",
    DT_RELENT: "RELENT",
    DT_PLTREL: "PLTREL",
    DT_DEBUG: "DEBUG",
    DT_TEXTREL: "TEXTREL",
    DT_JMPREL: "JMPREL",
    DT_BIND_NOW: "BIND_NOW",
    DT_INIT_ARRAY: "INIT_ARRAY",
    DT_FINI_ARRAY: "FINI_ARRAY",
    DT_INIT_ARRAYSZ: "INIT_ARRAYSZ",
    DT_FINI_ARRAYSZ: "FINI_ARRAYSZ",
    DT_RUNPATH: "RUNPATH",
    DT_FLAGS: "FLAGS",
    DT_PREINIT_ARRAY: "PREINIT_ARRAY",
    DT_PREINIT_ARRAYSZ: "PREINIT_ARRAYSZ",
    DT_GNU_HASH: "GNU_HASH",
    DT_VERSYM: "VERSYM",
    DT_RELACOUNT: "RELACOUNT",
    DT_RELCOUNT: "RELCOUNT",
    DT_FLAGS_1: "FLAGS_1",
    DT_VERNEED: "VERNEED",
    DT_VERNEEDNUM: "VERNEEDNUM",
}


def lookup_name(table: dict[int, str], value: int) -> str:
    """Return the display name for *value*, or its hex form if unknown."""
    return table.get(value, f"0x{value:x}")
