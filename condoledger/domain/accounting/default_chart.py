"""Default chart of accounts for a residential property (propiedad horizontal).

Based on the Colombian PUC. Only classes 1-5 are seeded; level and parent
are derived from each code.
"""

DEFAULT_CHART: list[tuple[str, str]] = [
    # Class 1 - Assets
    ("1", "ACTIVO"),
    ("11", "EFECTIVO Y EQUIVALENTES"),
    ("1105", "CAJA"),
    ("110505", "CAJA GENERAL"),
    ("110510", "CAJAS MENORES"),
    ("1110", "BANCOS"),
    ("111005", "MONEDA NACIONAL"),
    ("1120", "CUENTAS DE AHORRO"),
    ("112005", "BANCOS"),
    ("1125", "FONDOS"),
    ("112515", "FONDO DE IMPREVISTOS"),
    ("12", "INVERSIONES"),
    ("1225", "CERTIFICADOS"),
    ("122505", "CERTIFICADOS DE DEPOSITO A TERMINO"),
    ("13", "DEUDORES"),
    ("1305", "PROPIETARIOS Y/O RESIDENTES"),
    ("130505", "CUOTAS DE ADMINISTRACION"),
    ("130510", "INTERESES DE MORA"),
    ("130515", "CUOTAS EXTRAORDINARIAS"),
    ("130520", "SANCIONES"),
    ("130525", "USO ZONAS COMUNES"),
    ("1330", "ANTICIPOS Y AVANCES"),
    ("133005", "A PROVEEDORES"),
    ("133010", "A CONTRATISTAS"),
    ("1380", "DEUDORES VARIOS"),
    ("138020", "CUENTAS POR COBRAR DE TERCEROS"),
    ("1399", "DETERIORO DE CARTERA"),
    ("139905", "CUOTAS DE ADMINISTRACION"),
    ("15", "PROPIEDADES PLANTA Y EQUIPO"),
    ("1524", "EQUIPO DE OFICINA"),
    ("152405", "MUEBLES Y ENSERES"),
    ("152410", "EQUIPOS"),
    ("1528", "EQUIPO DE COMPUTACION Y COMUNICACION"),
    ("152805", "EQUIPO DE PROCESAMIENTO DE DATOS"),
    ("1592", "DEPRECIACION ACUMULADA"),
    ("159215", "EQUIPO DE OFICINA"),
    ("159220", "EQUIPO DE COMPUTACION Y COMUNICACION"),
    ("17", "DIFERIDOS"),
    ("1705", "GASTOS PAGADOS POR ANTICIPADO"),
    ("170520", "SEGUROS Y FIANZAS"),
    # Class 2 - Liabilities
    ("2", "PASIVO"),
    ("21", "OBLIGACIONES FINANCIERAS"),
    ("2105", "BANCOS NACIONALES"),
    ("210505", "SOBREGIROS"),
    ("23", "CUENTAS POR PAGAR"),
    ("2335", "COSTOS Y GASTOS POR PAGAR"),
    ("233505", "GASTOS FINANCIEROS"),
    ("233525", "HONORARIOS"),
    ("233530", "SERVICIOS TECNICOS"),
    ("233535", "SERVICIOS DE MANTENIMIENTO"),
    ("233550", "SERVICIOS PUBLICOS"),
    ("233555", "SEGUROS"),
    ("233595", "OTROS"),
    ("2365", "RETENCION EN LA FUENTE"),
    ("236515", "HONORARIOS"),
    ("236525", "SERVICIOS"),
    ("236540", "COMPRAS"),
    ("2370", "RETENCIONES Y APORTES DE NOMINA"),
    ("237005", "APORTES A SEGURIDAD SOCIAL"),
    ("2380", "ACREEDORES VARIOS"),
    ("238095", "OTROS"),
    ("25", "OBLIGACIONES LABORALES"),
    ("2505", "SALARIOS POR PAGAR"),
    ("250505", "SALARIOS POR PAGAR"),
    ("2510", "CESANTIAS CONSOLIDADAS"),
    ("251005", "CESANTIAS CONSOLIDADAS"),
    ("28", "OTROS PASIVOS"),
    ("2805", "INGRESOS RECIBIDOS POR ANTICIPADO"),
    ("280505", "CUOTAS DE ADMINISTRACION"),
    ("280510", "CUOTAS EXTRAORDINARIAS"),
    ("2815", "INGRESOS RECIBIDOS PARA TERCEROS"),
    ("281505", "VALORES RECIBIDOS PARA TERCEROS"),
    # Class 3 - Equity
    ("3", "PATRIMONIO"),
    ("33", "RESERVAS"),
    ("3305", "RESERVAS OBLIGATORIAS"),
    ("330505", "FONDO DE IMPREVISTOS"),
    ("3315", "RESERVAS OCASIONALES"),
    ("331505", "PARA MANTENIMIENTO"),
    ("36", "RESULTADOS DEL EJERCICIO"),
    ("3605", "EXCEDENTE DEL EJERCICIO"),
    ("360505", "EXCEDENTE DEL EJERCICIO"),
    ("3610", "DEFICIT DEL EJERCICIO"),
    ("361005", "DEFICIT DEL EJERCICIO"),
    ("37", "RESULTADOS DE EJERCICIOS ANTERIORES"),
    ("3705", "EXCEDENTES ACUMULADOS"),
    ("370505", "EXCEDENTES ACUMULADOS"),
    ("3710", "DEFICITS ACUMULADOS"),
    ("371005", "DEFICITS ACUMULADOS"),
    # Class 4 - Income
    ("4", "INGRESOS"),
    ("41", "EXPENSAS Y SERVICIOS COMUNES"),
    ("4170", "ACTIVIDADES DE SERVICIOS COMUNITARIOS"),
    ("417005", "CUOTAS DE ADMINISTRACION"),
    ("417010", "INTERESES DE MORA"),
    ("417015", "CUOTAS EXTRAORDINARIAS"),
    ("417025", "SANCIONES ASAMBLEA"),
    ("417030", "USO ZONAS COMUNES"),
    ("417085", "APROVECHAMIENTOS"),
    ("4175", "DESCUENTOS"),
    ("417505", "DESCUENTO PRONTO PAGO"),
    ("42", "INGRESOS NO OPERACIONALES"),
    ("4210", "FINANCIEROS"),
    ("421005", "INTERESES"),
    # Class 5 - Expenses
    ("5", "GASTOS"),
    ("51", "GASTOS DE ADMINISTRACION"),
    ("5105", "GASTOS DE PERSONAL"),
    ("510506", "SUELDOS"),
    ("510515", "HORAS EXTRAS Y RECARGOS"),
    ("510527", "AUXILIO DE TRANSPORTE"),
    ("510530", "CESANTIAS"),
    ("510536", "PRIMA DE SERVICIOS"),
    ("510539", "VACACIONES"),
    ("510569", "APORTES A SEGURIDAD SOCIAL"),
    ("5110", "HONORARIOS"),
    ("511005", "ADMINISTRACION"),
    ("511010", "REVISORIA FISCAL"),
    ("511015", "CONTABILIDAD"),
    ("511025", "ASESORIA JURIDICA"),
    ("5130", "SEGUROS"),
    ("513010", "DE COPROPIEDADES"),
    ("5135", "SERVICIOS"),
    ("513505", "ASEO"),
    ("513510", "VIGILANCIA"),
    ("513525", "ACUEDUCTO Y ALCANTARILLADO"),
    ("513530", "ENERGIA ELECTRICA"),
    ("513545", "TELEFONO E INTERNET"),
    ("513555", "GAS"),
    ("5140", "GASTOS LEGALES"),
    ("514005", "NOTARIALES"),
    ("5145", "MANTENIMIENTO Y REPARACIONES"),
    ("514505", "PRADOS Y JARDINES"),
    ("514510", "CONSTRUCCIONES Y EDIFICACIONES"),
    ("514515", "MAQUINARIA Y EQUIPO"),
    ("514535", "EXTINTORES"),
    ("514560", "FUMIGACION"),
    ("5160", "DEPRECIACIONES"),
    ("516015", "EQUIPO DE OFICINA"),
    ("516020", "EQUIPO DE COMPUTACION Y COMUNICACION"),
    ("5195", "OTROS GASTOS DE FUNCIONAMIENTO"),
    ("519525", "ELEMENTOS DE ASEO Y CAFETERIA"),
    ("519530", "UTILES, PAPELERIA Y FOTOCOPIAS"),
    ("519550", "FINANCIEROS"),
    ("519565", "AJUSTE AL PESO"),
    ("519575", "FONDO DE IMPREVISTOS"),
    ("5199", "DETERIORO DE CARTERA"),
    ("519910", "EXPENSAS Y SERVICIOS COMUNES"),
]

# Code prefixes whose accounts track a debtor or creditor per entry
THIRD_PARTY_PREFIXES = ("13", "23")
